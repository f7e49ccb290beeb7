"""
🌐 REST API (FastAPI)

Маршруты под /api/v1: авторизация, каталог, адреса, заказы.
"""
