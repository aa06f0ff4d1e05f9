"""LLM helper functions for the TravelViet AI planner gateway.

Builds the context-aware system prompt and relays an OpenAI-compatible
chat completion stream (Groq by default) as Server-Sent-Events.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from openai import OpenAI

from travelviet.api.config import get_ai_api_key, get_llm_config

logger = logging.getLogger(__name__)

_client: Optional[OpenAI] = None

# ---------------------------------------------------------------------------
# Prompt construction helpers
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """Bạn là TravelViet AI - trợ lý du lịch thông minh chuyên về du lịch Việt Nam nội địa.

NHIỆM VỤ:
- Tư vấn địa điểm du lịch, ẩm thực, văn hóa Việt Nam
- Lên lịch trình chi tiết theo ngày với thời gian, địa điểm, chi phí
- Gợi ý các điểm đến "hidden gem" ít người biết
- Tối ưu lộ trình để tiết kiệm thời gian di chuyển
- Ước tính chi phí cho từng hoạt động và tổng chuyến đi

PHONG CÁCH:
- Thân thiện, nhiệt tình như một người bạn bản địa
- Trả lời bằng tiếng Việt
- Đưa ra lời khuyên thực tế, cập nhật
- Cảnh báo về những điều cần tránh (đông đúc, lừa đảo, thời tiết)

QUAN TRỌNG - LINK VÀ HÌNH ẢNH:
Với MỖI địa điểm được đề cập, BẮT BUỘC phải thêm:
1. **Link Google Maps** theo format: [📍 Xem bản đồ](https://www.google.com/maps/search/?api=1&query=TEN_DIA_DIEM+TINH_THANH+Vietnam)
2. **Hình ảnh minh họa** từ Unsplash theo format: ![Mô tả](https://source.unsplash.com/800x400/?vietnam,TEN_DIA_DIEM)

KHI TẠO LỊCH TRÌNH:
Hãy trả lời theo format Markdown dễ đọc với:
- Tổng quan chuyến đi
- Mỗi ngày bắt đầu bằng tiêu đề "#### Ngày N: YYYY-MM-DD"
- Mỗi hoạt động là một dòng "- **HH:MM**: mô tả" kèm link bản đồ
- Địa điểm ăn uống địa phương (kèm link maps)
- Chi phí ước tính cho từng hoạt động, ví dụ "150.000 VNĐ"
- Tips và lưu ý quan trọng
- Các điểm đến ẩn giấu (hidden gems) nếu có"""

UNKNOWN = "Chưa xác định"


def format_vnd_amount(amount: int) -> str:
    """``1500000`` -> ``"1.500.000"`` (Vietnamese digit grouping)."""
    return f"{int(amount):,}".replace(",", ".")


def build_system_prompt(trip_context: Optional[Dict[str, Any]] = None) -> str:
    """Append the current trip's details to the base prompt."""
    if not trip_context:
        return SYSTEM_PROMPT

    destinations = trip_context.get("destination") or []
    if isinstance(destinations, str):
        destinations = [destinations]
    budget = trip_context.get("budget")

    return SYSTEM_PROMPT + (
        "\n\nTHÔNG TIN CHUYẾN ĐI HIỆN TẠI:\n"
        f"- Điểm đến: {', '.join(destinations) or UNKNOWN}\n"
        f"- Ngày đi: {trip_context.get('startDate') or UNKNOWN}\n"
        f"- Ngày về: {trip_context.get('endDate') or UNKNOWN}\n"
        f"- Hình thức: {trip_context.get('mode') or UNKNOWN}\n"
        f"- Ngân sách: {format_vnd_amount(budget) + ' VNĐ' if budget else UNKNOWN}"
    )


# ---------------------------------------------------------------------------
# OpenAI client
# ---------------------------------------------------------------------------

def _get_client() -> OpenAI:
    """Return a cached OpenAI client pointed at the configured provider."""
    global _client
    if _client is None:
        cfg = get_llm_config()
        _client = OpenAI(api_key=get_ai_api_key(), base_url=cfg["base_url"])
        logger.info("Initialised chat completion client for %s", cfg["base_url"])
    return _client


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def open_completion_stream(
    messages: List[Dict[str, str]],
    trip_context: Optional[Dict[str, Any]] = None,
    client: Optional[OpenAI] = None,
):
    """Start a streaming completion.

    HTTP errors from the provider are raised here (``openai.APIStatusError``
    and friends), before any byte is sent to our own caller.
    """
    cfg = get_llm_config()
    client = client or _get_client()

    logger.debug(
        "Calling chat completion: model=%s messages=%d context=%s",
        cfg["model"],
        len(messages),
        bool(trip_context),
    )

    return client.chat.completions.create(
        model=cfg["model"],
        messages=[{"role": "system", "content": build_system_prompt(trip_context)}, *messages],
        stream=True,
        temperature=cfg["temperature"],
        max_tokens=cfg["max_tokens"],
    )


def iter_sse(stream: Iterable[Any]) -> Iterator[str]:
    """Re-emit completion chunks as ``data: <json>`` events plus ``[DONE]``."""
    try:
        for chunk in stream:
            yield f"data: {chunk.model_dump_json(exclude_none=True)}\n\n"
    except Exception as exc:
        # Headers are already sent; end the stream so the client stops reading.
        logger.error("Completion stream failed mid-way: %s", exc)
    yield "data: [DONE]\n\n"
