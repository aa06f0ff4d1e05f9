import unicodedata

import pytest

from travelviet.api.itinerary_parser import (
    ItineraryTextParser,
    classify_item,
    clean_description,
    extract_cost,
    extract_location,
    parse,
    parse_items,
    parse_times,
    split_days,
)
from travelviet.api.models import ItemType

SAMPLE = """Đây là lịch trình gợi ý cho chuyến đi Đà Nẵng của bạn:

#### Ngày 1: 2024-06-01
- **8:00**: Tham quan [Bà Nà Hills](https://maps.google.com/?q=Ba+Na) với cáp treo, vé 850.000 VNĐ
- **12:00**: Ăn trưa mì Quảng tại [Mì Quảng Bà Mua](https://maps.google.com/?q=Mi+Quang) khoảng 50.000đ
- **Tối**: Nghỉ tại khách sạn ven biển Mỹ Khê

#### Ngày 2: 2024-06-02
- **7:30**: Di chuyển bằng taxi ra Hội An
- **9h - 11h30**: Dạo phố cổ, xem chùa Cầu

Chúc bạn có chuyến đi vui vẻ!
"""


def test_sample_days_and_dates():
    days = parse(SAMPLE)
    assert [d.day_index for d in days] == [1, 2]
    assert [d.date for d in days] == ["2024-06-01", "2024-06-02"]
    assert [len(d.items) for d in days] == [3, 2]


def test_sample_first_day_items():
    visit, lunch, stay = parse(SAMPLE)[0].items

    assert visit.title == "Bà Nà Hills"
    assert visit.location_name == "Bà Nà Hills"
    assert visit.start_time == "08:00"
    assert visit.item_type is ItemType.VISIT
    assert visit.estimated_cost_vnd == 850000
    assert "[" not in visit.description and "https://" not in visit.description

    assert lunch.item_type is ItemType.FOOD
    assert lunch.start_time == "12:00"
    assert lunch.estimated_cost_vnd == 50000

    assert stay.item_type is ItemType.STAY
    assert stay.start_time is None
    assert stay.location_name is None
    assert stay.title == "Nghỉ tại khách sạn ven biển Mỹ Khê"
    assert stay.description is None


def test_sample_second_day_items():
    ride, walk = parse(SAMPLE)[1].items
    assert ride.item_type is ItemType.TRANSPORT
    assert ride.start_time == "07:30"
    assert (walk.start_time, walk.end_time) == ("09:00", "11:30")
    assert walk.item_type is ItemType.VISIT


def test_no_day_headers_yields_empty_list():
    assert parse("Bạn muốn đi đâu? Mình có thể gợi ý vài điểm đến.") == []


@pytest.mark.parametrize("text", ["", None, 42])
def test_non_text_input_yields_empty_list(text):
    assert parse(text) == []


def test_header_without_date():
    days = parse("## Ngày 3\n- **Sáng**: Leo núi Fansipan")
    assert days[0].day_index == 3
    assert days[0].date is None


def test_day_index_kept_as_written():
    days = parse("### Ngày 2\n- **Sáng**: Chợ Bến Thành\n### Ngày 2\n- **Chiều**: Nhà thờ Đức Bà")
    assert [d.day_index for d in days] == [2, 2]


def test_fallback_headers_used_only_without_primary():
    text = "Ngày 1: 2024-05-01\n- **Sáng**: Dạo Hồ Gươm\nNgày 2\n- **Tối**: Xem múa rối nước"
    days = parse(text)
    assert [d.day_index for d in days] == [1, 2]
    assert days[0].date == "2024-05-01"
    assert days[1].items[0].title == "Xem múa rối nước"


def test_primary_and_fallback_are_never_merged():
    text = "## Ngày 1\n- **Sáng**: Dạo Hồ Gươm\nNgày 2 chúng ta sẽ nghỉ ngơi"
    days = split_days(text)
    assert len(days) == 1
    assert "Ngày 2" in days[0].content


def test_start_time_from_bold_clock_label():
    items = parse_items("- **8:00**: Thăm Bà Nà Hills")
    assert items[0].start_time == "08:00"
    assert items[0].title == "Thăm Bà Nà Hills"


@pytest.mark.parametrize(
    "label, expected",
    [
        ("8:00", ("08:00", None)),
        ("14h30", ("14:30", None)),
        ("7h", ("07:00", None)),
        ("9:00 - 11:00", ("09:00", "11:00")),
        ("Sáng", (None, None)),
        ("25:00", (None, None)),
    ],
)
def test_parse_times(label, expected):
    assert parse_times(label) == expected


def test_bullet_label_styles():
    content = "- **Sáng:** Chợ nổi Cái Răng\n* **Trưa**: Ăn lẩu mắm\n+ Chiều: Vườn cò Bằng Lăng"
    titles = [item.title for item in parse_items(content)]
    assert titles == ["Chợ nổi Cái Răng", "Ăn lẩu mắm", "Vườn cò Bằng Lăng"]


def test_unlabelled_lines_continue_previous_item():
    content = "- **Sáng**: Tham quan Đại Nội\n  mua vé tại cổng Ngọ Môn\n- **Chiều**: Chùa Thiên Mụ"
    first, second = parse_items(content)
    assert first.title == "Tham quan Đại Nội mua vé tại cổng Ngọ Môn"
    assert first.description is None
    assert second.title == "Chùa Thiên Mụ"


@pytest.mark.parametrize(
    "body, expected",
    [
        ("Vé 150.000 VNĐ/người", 150000),
        ("khoảng 150000 vnđ", 150000),
        ("1,500,000 đồng cho cả nhóm", 1500000),
        ("Cà phê 35.000đ", 35000),
        ("Miễn phí vào cửa", None),
        ("Đi 2 tiếng", None),
    ],
)
def test_extract_cost(body, expected):
    assert extract_cost(body) == expected


def test_location_from_first_link_and_map_caption_removed():
    body = "Ghé [Chợ Hàn 📍 Xem bản đồ](https://maps.google.com/?q=Cho+Han) rồi [Cầu Rồng](https://x)"
    assert extract_location(body) == "Chợ Hàn"


def test_images_are_not_locations():
    body = "![Ảnh biển](https://img.example/bien.jpg) Tắm biển Mỹ Khê"
    assert extract_location(body) is None
    assert clean_description(body) == "Tắm biển Mỹ Khê"


def test_clean_description_collapses_links_and_whitespace():
    body = "Thăm   [Lăng Bác](https://maps)\n\tvà  Hồ Tây"
    assert clean_description(body) == "Thăm Lăng Bác và Hồ Tây"


def test_description_truncated():
    item = parse_items("- **Sáng**: " + "a" * 600)[0]
    assert len(item.description) == 500
    assert len(item.title) == 100


def test_title_falls_back_to_first_sentence():
    item = parse_items("- **Sáng**: Dạo bờ sông Hương. Sau đó uống cà phê muối")[0]
    assert item.title == "Dạo bờ sông Hương"
    assert item.location_name is None


@pytest.mark.parametrize("body", ["Ok", "  ", ". Đi tiếp", "[](https://maps)"])
def test_short_titles_are_dropped(body):
    assert parse_items("- **Sáng**: " + body) == []


@pytest.mark.parametrize(
    "body, expected",
    [
        ("Ăn sáng bánh mì Phượng", ItemType.FOOD),
        ("Ăn tối tại nhà hàng của khách sạn", ItemType.FOOD),
        ("Đi taxi về khách sạn", ItemType.STAY),
        ("Di chuyển ra sân bay", ItemType.TRANSPORT),
        ("Thuê xe máy dạo đèo Hải Vân", ItemType.TRANSPORT),
        ("Đi xem phim", ItemType.VISIT),
        ("Tham quan bảo tàng Chăm", ItemType.VISIT),
    ],
)
def test_classify_item(body, expected):
    assert classify_item(body) is expected


def test_decomposed_unicode_is_normalized():
    text = unicodedata.normalize("NFD", "## Ngày 1\n- **Trưa**: Ăn phở Thìn")
    days = parse(text)
    assert days[0].items[0].item_type is ItemType.FOOD
    assert days[0].items[0].title == "Ăn phở Thìn"


def test_parser_object_delegates():
    assert ItineraryTextParser().parse(SAMPLE)[0].items[0].title == "Bà Nà Hills"


def test_to_dict_uses_plain_values():
    data = parse(SAMPLE)[0].to_dict()
    assert data["day_index"] == 1
    assert data["items"][1]["item_type"] == "food"


def test_nested_map_link_bullet_stays_with_its_item():
    content = (
        "- **8:00**: Thăm Bà Nà Hills\n"
        "  - [📍 Xem bản đồ](https://www.google.com/maps/search/?api=1&query=Ba+Na+Hills)\n"
        "- **12:00**: Ăn trưa mì Quảng"
    )
    items = parse_items(content)
    assert len(items) == 2
    assert items[0].title.startswith("Thăm Bà Nà Hills")
    assert items[0].start_time == "08:00"
    assert items[1].item_type is ItemType.FOOD
    assert all(not item.title.startswith("//") for item in items)
