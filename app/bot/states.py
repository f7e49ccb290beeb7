# app/bot/states.py
"""
Состояния диалога с клиентом.

BotState  — шаг сценария (регистрация → адрес → покупки)
MenuState — глубина навигации по меню, имеет смысл только
            когда клиент зарегистрирован (REGISTERED / MENU_*)
"""

from enum import Enum


class BotState(str, Enum):
    START = "START"
    AWAITING_LANGUAGE = "AWAITING_LANGUAGE"
    AWAITING_PHONE = "AWAITING_PHONE"
    AWAITING_OTP = "AWAITING_OTP"
    AWAITING_ADDRESS = "AWAITING_ADDRESS"
    AWAITING_ADDRESS_DETAILS = "AWAITING_ADDRESS_DETAILS"
    AWAITING_ADDRESS_SELECTION = "AWAITING_ADDRESS_SELECTION"
    REGISTERED = "REGISTERED"
    PRODUCT_DETAIL_VIEW = "PRODUCT_DETAIL_VIEW"

    @property
    def is_browsing(self) -> bool:
        """REGISTERED или любое состояние семейства MENU_*."""
        return self is BotState.REGISTERED or self.name.startswith("MENU_")

    @property
    def is_registration(self) -> bool:
        """Телефон ещё не подтверждён: кнопки меню и заказа недоступны."""
        return self in REGISTRATION_STATES


REGISTRATION_STATES = frozenset({
    BotState.START,
    BotState.AWAITING_LANGUAGE,
    BotState.AWAITING_PHONE,
    BotState.AWAITING_OTP,
})


class MenuState(str, Enum):
    MAIN_MENU = "MAIN_MENU"
    CATEGORY_VIEW = "CATEGORY_VIEW"
    PRODUCT_VIEW = "PRODUCT_VIEW"


class MenuCommand(str, Enum):
    """
    Кнопки главного меню.

    Reply-клавиатура Telegram присылает текст кнопки, поэтому
    текст сначала переводится в код, а диспетчер работает только с кодом.
    """
    MENU = "menu"
    CART = "cart"
    ADDRESSES = "addresses"
    SETTINGS = "settings"
    RETURN = "return"


# Ключ локализации для подписи каждой кнопки
MENU_COMMAND_LABELS = {
    MenuCommand.MENU: "button.menu",
    MenuCommand.CART: "button.cart",
    MenuCommand.ADDRESSES: "button.my_addresses",
    MenuCommand.SETTINGS: "button.settings",
    MenuCommand.RETURN: "button.return",
}


# Что ответить на произвольный текст, пока шаг не завершён
STATE_REMINDERS = {
    BotState.AWAITING_LANGUAGE: "error.select_language_first",
    BotState.AWAITING_PHONE: "error.share_contact_first",
    BotState.AWAITING_OTP: "error.enter_otp_first",
    BotState.AWAITING_ADDRESS: "error.share_location_first",
    BotState.AWAITING_ADDRESS_DETAILS: "error.enter_address_details_first",
    BotState.AWAITING_ADDRESS_SELECTION: "error.select_address_first",
    BotState.PRODUCT_DETAIL_VIEW: "error.select_product_first",
}
