# app/bot/i18n.py
"""
🌐 ЛОКАЛИЗАЦИЯ

Тексты бота на трёх языках: uz (по умолчанию), ru, en.

    localizer.resolve("order.id", "ru", 42)  → "Номер заказа: 42"

Если ключа нет в нужном языке, берём язык по умолчанию,
если нет и там, возвращаем сам ключ (и пишем warning в лог).
"""

from typing import Dict, Optional

from config.settings import config
from app.bot.states import MENU_COMMAND_LABELS, MenuCommand

import structlog

logger = structlog.get_logger()


SUPPORTED_LOCALES = ("uz", "ru", "en")

LANGUAGE_BUTTONS = (
    ("🇺🇿 O'zbekcha", "uz"),
    ("🇷🇺 Русский", "ru"),
)


MESSAGES: Dict[str, Dict[str, str]] = {
    # ==========================================
    # O'ZBEKCHA
    # ==========================================
    "uz": {
        "language.select": "Tilni tanlang / Выберите язык",
        "language.selected": "✅ Til tanlandi: O'zbekcha",
        "welcome.message": "Xush kelibsiz, {0}! 🎉",
        "welcome.back": "Qaytganingiz bilan, {0}! 👋",
        "register.prompt_phone": "Ro'yxatdan o'tish uchun telefon raqamingizni yuboring.",
        "button.register.share_phone": "📱 Raqamni yuborish",
        "otp.prompt": "SMS orqali kelgan kodni ushbu xabarga javob sifatida yuboring.",
        "error.invalid_contact": "❌ Iltimos, o'zingizning raqamingizni yuboring.",
        "error.invalid_phone_number": "❌ Faqat +998XXXXXXXXX formatidagi raqamlar qabul qilinadi.",
        "error.otp.request_failed": "❌ Kod yuborib bo'lmadi. Qaytadan urinib ko'ring.",
        "error.otp.invalid": "❌ Kod noto'g'ri. Yangi kod yuborildi.",
        "error.otp.expired_or_missing": "❌ Kod topilmadi yoki muddati o'tgan.",
        "error.generic": "❌ Xatolik yuz berdi. Keyinroq urinib ko'ring.",
        "address.prompt": "📍 Yetkazib berish manzilini joylashuv orqali yuboring.",
        "address.details_prompt": "Manzilni yozing: \"ko'cha, uy, shahar\"",
        "button.share_location": "📍 Joylashuvni yuborish",
        "address.saved": "✅ Manzil saqlandi.",
        "error.address.save_failed": "❌ Manzilni saqlab bo'lmadi.",
        "error.auth.required": "❌ Avval ro'yxatdan o'ting.",
        "main_menu.prompt": "Asosiy menyu:",
        "button.menu": "🍽 Menyu",
        "button.cart": "🛒 Savat",
        "button.my_addresses": "📍 Manzillarim",
        "button.settings": "⚙️ Sozlamalar",
        "button.return": "⬅️ Ortga",
        "button.main_menu": "🏠 Asosiy menyu",
        "category.choose": "Kategoriyani tanlang:",
        "product.choose": "Mahsulotni tanlang:",
        "product.none_in_category": "Bu kategoriyada mahsulot yo'q.",
        "error.product_not_found": "❌ Mahsulot topilmadi.",
        "error.invalid_quantity": "❌ Miqdor kamida 1 bo'lishi kerak.",
        "error.category_not_found": "❌ Kategoriya topilmadi.",
        "price": "Narxi",
        "quantity": "Miqdori",
        "button.add_to_cart": "🛒 Savatga qo'shish",
        "cart.added_items": "✅ Savatga {0} dona qo'shildi.",
        "cart.empty": "🛒 Savat bo'sh.",
        "cart.title": "🛒 Savatingiz:",
        "cart.total": "Jami",
        "button.checkout": "✅ Buyurtma berish",
        "button.continue_shopping": "🛍 Xaridni davom ettirish",
        "error.cart.view_failed": "❌ Savatni ko'rsatib bo'lmadi.",
        "checkout.no_addresses": "Sizda saqlangan manzil yo'q. Avval manzil qo'shing.",
        "checkout.select_address": "Yetkazib berish manzilini tanlang:",
        "button.add_new_address": "➕ Yangi manzil",
        "error.checkout": "❌ Buyurtmani rasmiylashtirib bo'lmadi.",
        "address.select_or_add": "Manzilni tanlang yoki yangisini qo'shing:",
        "address.selected": "✅ Manzil tanlandi.",
        "address.none": "Saqlangan manzillar yo'q.",
        "address.list_title": "📍 Manzillaringiz:",
        "order.summary_title": "📋 Buyurtma",
        "order.subtotal": "Mahsulotlar",
        "order.service_fee": "Xizmat haqi (5%)",
        "order.delivery_fee": "Yetkazib berish",
        "order.discount": "Chegirma",
        "order.total_label": "Jami",
        "order.payment_cash": "To'lov: naqd (kuryerga)",
        "button.confirm_order": "Tasdiqlash",
        "button.cancel": "Bekor qilish",
        "order.cancelled": "Buyurtma bekor qilindi.",
        "order.confirmed": "✅ Buyurtma qabul qilindi!",
        "order.id": "Buyurtma raqami: {0}",
        "order.total": "Jami: {0} UZS",
        "order.failed": "❌ Buyurtmani yaratib bo'lmadi. Savat saqlandi, qaytadan urinib ko'ring.",
        "error.address.required": "❌ Avval yetkazib berish manzilini tanlang.",
        "help.text": "/start — boshlash\n/menu — asosiy menyu\n/settings — til\n/deletedata — ma'lumotlarni o'chirish\n/help — yordam",
        "error.command.unavailable": "❌ {0} buyrug'i hozir mavjud emas. Avval ro'yxatdan o'ting.",
        "unknown.command": "🤷 Tushunmadim: {0}",
        "error.select_language_first": "Avval tilni tanlang.",
        "error.share_contact_first": "Avval telefon raqamingizni yuboring.",
        "error.enter_otp_first": "Avval SMS kodni kiriting.",
        "error.share_location_first": "Avval joylashuvni yuboring.",
        "error.enter_address_details_first": "Avval manzilni matn bilan yozing: ko'cha, shahar.",
        "error.select_address_first": "Avval manzilni tanlang.",
        "error.select_product_first": "Avval mahsulotni tanlang.",
        "error.send_failed": "❌ Xabarni yuborib bo'lmadi.",
        "data.delete_confirm": "Barcha ma'lumotlaringizni o'chirmoqchimisiz? Buni qaytarib bo'lmaydi.",
        "button.delete_yes": "✅ Ha, o'chirish",
        "button.delete_no": "❌ Yo'q",
        "data.deleted": "🗑 Ma'lumotlaringiz o'chirildi. Qaytadan boshlash uchun /start.",
    },

    # ==========================================
    # РУССКИЙ
    # ==========================================
    "ru": {
        "language.select": "Tilni tanlang / Выберите язык",
        "language.selected": "✅ Выбран язык: Русский",
        "welcome.message": "Добро пожаловать, {0}! 🎉",
        "welcome.back": "С возвращением, {0}! 👋",
        "register.prompt_phone": "Для регистрации отправьте свой номер телефона.",
        "button.register.share_phone": "📱 Отправить номер",
        "otp.prompt": "Отправьте код из SMS ответом на это сообщение.",
        "error.invalid_contact": "❌ Пожалуйста, отправьте свой собственный номер.",
        "error.invalid_phone_number": "❌ Принимаются только номера формата +998XXXXXXXXX.",
        "error.otp.request_failed": "❌ Не удалось отправить код. Попробуйте ещё раз.",
        "error.otp.invalid": "❌ Неверный код. Мы отправили новый.",
        "error.otp.expired_or_missing": "❌ Код не найден или истёк.",
        "error.generic": "❌ Что-то пошло не так. Попробуйте позже.",
        "address.prompt": "📍 Отправьте геолокацию адреса доставки.",
        "address.details_prompt": "Напишите адрес: \"улица, дом, город\"",
        "button.share_location": "📍 Отправить геолокацию",
        "address.saved": "✅ Адрес сохранён.",
        "error.address.save_failed": "❌ Не удалось сохранить адрес.",
        "error.auth.required": "❌ Сначала зарегистрируйтесь.",
        "main_menu.prompt": "Главное меню:",
        "button.menu": "🍽 Меню",
        "button.cart": "🛒 Корзина",
        "button.my_addresses": "📍 Мои адреса",
        "button.settings": "⚙️ Настройки",
        "button.return": "⬅️ Назад",
        "button.main_menu": "🏠 Главное меню",
        "category.choose": "Выберите категорию:",
        "product.choose": "Выберите блюдо:",
        "product.none_in_category": "В этой категории пока нет блюд.",
        "error.product_not_found": "❌ Блюдо не найдено.",
        "error.invalid_quantity": "❌ Количество должно быть не меньше 1.",
        "error.category_not_found": "❌ Категория не найдена.",
        "price": "Цена",
        "quantity": "Количество",
        "button.add_to_cart": "🛒 В корзину",
        "cart.added_items": "✅ Добавлено в корзину: {0} шт.",
        "cart.empty": "🛒 Корзина пуста.",
        "cart.title": "🛒 Ваша корзина:",
        "cart.total": "Итого",
        "button.checkout": "✅ Оформить заказ",
        "button.continue_shopping": "🛍 Продолжить покупки",
        "error.cart.view_failed": "❌ Не удалось показать корзину.",
        "checkout.no_addresses": "У вас нет сохранённых адресов. Сначала добавьте адрес.",
        "checkout.select_address": "Выберите адрес доставки:",
        "button.add_new_address": "➕ Новый адрес",
        "error.checkout": "❌ Не удалось оформить заказ.",
        "address.select_or_add": "Выберите адрес или добавьте новый:",
        "address.selected": "✅ Адрес выбран.",
        "address.none": "Сохранённых адресов нет.",
        "address.list_title": "📍 Ваши адреса:",
        "order.summary_title": "📋 Ваш заказ",
        "order.subtotal": "Блюда",
        "order.service_fee": "Сервисный сбор (5%)",
        "order.delivery_fee": "Доставка",
        "order.discount": "Скидка",
        "order.total_label": "Итого",
        "order.payment_cash": "Оплата: наличными курьеру",
        "button.confirm_order": "Подтвердить",
        "button.cancel": "Отменить",
        "order.cancelled": "Заказ отменён.",
        "order.confirmed": "✅ Заказ принят!",
        "order.id": "Номер заказа: {0}",
        "order.total": "Итого: {0} UZS",
        "order.failed": "❌ Не удалось создать заказ. Корзина сохранена, попробуйте ещё раз.",
        "error.address.required": "❌ Сначала выберите адрес доставки.",
        "help.text": "/start — начать\n/menu — главное меню\n/settings — язык\n/deletedata — удалить мои данные\n/help — помощь",
        "error.command.unavailable": "❌ Команда {0} сейчас недоступна. Сначала зарегистрируйтесь.",
        "unknown.command": "🤷 Не понял: {0}",
        "error.select_language_first": "Сначала выберите язык.",
        "error.share_contact_first": "Сначала отправьте номер телефона.",
        "error.enter_otp_first": "Сначала введите код из SMS.",
        "error.share_location_first": "Сначала отправьте геолокацию.",
        "error.enter_address_details_first": "Сначала напишите адрес текстом: улица, город.",
        "error.select_address_first": "Сначала выберите адрес.",
        "error.select_product_first": "Сначала выберите блюдо.",
        "error.send_failed": "❌ Не удалось отправить сообщение.",
        "data.delete_confirm": "Удалить все ваши данные? Это действие нельзя отменить.",
        "button.delete_yes": "✅ Да, удалить",
        "button.delete_no": "❌ Нет",
        "data.deleted": "🗑 Ваши данные удалены. Чтобы начать заново, нажмите /start.",
    },

    # ==========================================
    # ENGLISH
    # ==========================================
    "en": {
        "language.select": "Choose your language",
        "language.selected": "✅ Language: English",
        "welcome.message": "Welcome, {0}! 🎉",
        "welcome.back": "Welcome back, {0}! 👋",
        "register.prompt_phone": "Please share your phone number to register.",
        "button.register.share_phone": "📱 Share phone number",
        "otp.prompt": "Reply to this message with the code from the SMS.",
        "error.invalid_contact": "❌ Please share your own phone number.",
        "error.invalid_phone_number": "❌ Only +998XXXXXXXXX numbers are supported.",
        "error.otp.request_failed": "❌ Could not send the code. Please try again.",
        "error.otp.invalid": "❌ Wrong code. A new one has been sent.",
        "error.otp.expired_or_missing": "❌ The code is missing or has expired.",
        "error.generic": "❌ Something went wrong. Please try again later.",
        "address.prompt": "📍 Share the delivery location.",
        "address.details_prompt": "Type the address: \"street, building, city\"",
        "button.share_location": "📍 Share location",
        "address.saved": "✅ Address saved.",
        "error.address.save_failed": "❌ Could not save the address.",
        "error.auth.required": "❌ Please register first.",
        "main_menu.prompt": "Main menu:",
        "button.menu": "🍽 Menu",
        "button.cart": "🛒 Cart",
        "button.my_addresses": "📍 My addresses",
        "button.settings": "⚙️ Settings",
        "button.return": "⬅️ Back",
        "button.main_menu": "🏠 Main menu",
        "category.choose": "Choose a category:",
        "product.choose": "Choose a dish:",
        "product.none_in_category": "No dishes in this category yet.",
        "error.product_not_found": "❌ Product not found.",
        "error.invalid_quantity": "❌ Quantity must be at least 1.",
        "error.category_not_found": "❌ Category not found.",
        "price": "Price",
        "quantity": "Quantity",
        "button.add_to_cart": "🛒 Add to cart",
        "cart.added_items": "✅ Added {0} to the cart.",
        "cart.empty": "🛒 Your cart is empty.",
        "cart.title": "🛒 Your cart:",
        "cart.total": "Total",
        "button.checkout": "✅ Checkout",
        "button.continue_shopping": "🛍 Continue shopping",
        "error.cart.view_failed": "❌ Could not show the cart.",
        "checkout.no_addresses": "You have no saved addresses. Please add one first.",
        "checkout.select_address": "Choose the delivery address:",
        "button.add_new_address": "➕ New address",
        "error.checkout": "❌ Checkout failed.",
        "address.select_or_add": "Choose an address or add a new one:",
        "address.selected": "✅ Address selected.",
        "address.none": "You have no saved addresses.",
        "address.list_title": "📍 Your addresses:",
        "order.summary_title": "📋 Order summary",
        "order.subtotal": "Subtotal",
        "order.service_fee": "Service fee (5%)",
        "order.delivery_fee": "Delivery fee",
        "order.discount": "Discount",
        "order.total_label": "Total",
        "order.payment_cash": "Payment: cash on delivery",
        "button.confirm_order": "Confirm",
        "button.cancel": "Cancel",
        "order.cancelled": "Order cancelled.",
        "order.confirmed": "✅ Order placed!",
        "order.id": "Order number: {0}",
        "order.total": "Total: {0} UZS",
        "order.failed": "❌ Could not create the order. Your cart is kept, please try again.",
        "error.address.required": "❌ Please choose a delivery address first.",
        "help.text": "/start — start\n/menu — main menu\n/settings — language\n/deletedata — delete my data\n/help — help",
        "error.command.unavailable": "❌ {0} is not available yet. Please register first.",
        "unknown.command": "🤷 Unknown command: {0}",
        "error.select_language_first": "Please choose a language first.",
        "error.share_contact_first": "Please share your phone number first.",
        "error.enter_otp_first": "Please enter the SMS code first.",
        "error.share_location_first": "Please share your location first.",
        "error.enter_address_details_first": "Please type the address first: street, city.",
        "error.select_address_first": "Please choose an address first.",
        "error.select_product_first": "Please choose a product first.",
        "error.send_failed": "❌ Could not send the message.",
        "data.delete_confirm": "Delete all your data? This cannot be undone.",
        "button.delete_yes": "✅ Yes, delete",
        "button.delete_no": "❌ No, keep it",
        "data.deleted": "🗑 Your data has been deleted. Send /start to begin again.",
    },
}


class Localizer:
    """Переводит ключ + язык в текст."""

    def __init__(self, messages: Optional[Dict[str, Dict[str, str]]] = None, default_locale: Optional[str] = None):
        self.messages = messages if messages is not None else MESSAGES
        self.default_locale = default_locale or config.default_locale

    def normalize(self, locale: Optional[str]) -> str:
        """'ru-RU' → 'ru'; неизвестный язык → язык по умолчанию."""
        if not locale:
            return self.default_locale
        code = locale.split("-")[0].split("_")[0].lower()
        return code if code in self.messages else self.default_locale

    def resolve(self, key: str, locale: Optional[str], *args) -> str:
        locale = self.normalize(locale)
        template = self.messages.get(locale, {}).get(key)

        if template is None:
            template = self.messages.get(self.default_locale, {}).get(key)
            if template is None:
                logger.warning("message_key_missing", key=key, locale=locale)
                return key

        if args:
            return template.format(*args)
        return template

    # ==========================================
    # КНОПКИ ГЛАВНОГО МЕНЮ
    # ==========================================

    def label(self, command: MenuCommand, locale: Optional[str]) -> str:
        return self.resolve(MENU_COMMAND_LABELS[command], locale)

    def resolve_menu_command(self, text: str, locale: Optional[str]) -> Optional[MenuCommand]:
        """
        Текст → код кнопки.

        Сначала сам код ("cart"), потом подпись кнопки на языке чата.
        """
        cleaned = text.strip()

        by_code = {command.value: command for command in MenuCommand}
        if cleaned.lower() in by_code:
            return by_code[cleaned.lower()]

        for command in MenuCommand:
            if cleaned == self.label(command, locale):
                return command
        return None

    # ==========================================
    # НАЗВАНИЯ КАТЕГОРИЙ / ПРОДУКТОВ
    # ==========================================

    def localized_name(self, item, locale: Optional[str]) -> str:
        """name_uz / name_ru по языку, иначе name."""
        locale = self.normalize(locale)
        value = getattr(item, f"name_{locale}", None)
        return value or item.name


localizer = Localizer()
