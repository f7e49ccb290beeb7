"""RestoranPro: Telegram-бот и REST API для заказа еды."""
