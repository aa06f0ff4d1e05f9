# travelviet/routes/__init__.py
NAMESPACE = "/travel/ws"
