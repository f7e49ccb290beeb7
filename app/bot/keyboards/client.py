# app/bot/keyboards/client.py
"""
Клавиатуры для клиентов.

Есть два типа кнопок:
1. ReplyKeyboardMarkup — обычные кнопки снизу экрана (присылают свой текст)
2. InlineKeyboardMarkup — кнопки прямо в сообщении (присылают callback_data)

Подписи приходят уже переведёнными, здесь только раскладка.
"""

from html import escape
from typing import Iterable, List, Sequence, Tuple

from aiogram.types import (
    ForceReply,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from app.bot.i18n import LANGUAGE_BUTTONS


def _chunk(items: Sequence, size: int = 2) -> List[list]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


# ==========================================
# РЕГИСТРАЦИЯ
# ==========================================

def language_keyboard(return_label: str | None = None) -> InlineKeyboardMarkup:
    """🇺🇿 / 🇷🇺 → callback_data="set_lang:uz" / "set_lang:ru"."""
    rows = [[
        InlineKeyboardButton(text=text, callback_data=f"set_lang:{code}")
        for text, code in LANGUAGE_BUTTONS
    ]]
    if return_label:
        rows.append([InlineKeyboardButton(text=return_label, callback_data="main_menu")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def phone_request_keyboard(label: str) -> ReplyKeyboardMarkup:
    """Кнопка с request_contact=True: Telegram пришлёт контакт пользователя."""
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=label, request_contact=True)]],
        resize_keyboard=True,
        one_time_keyboard=True
    )


def location_request_keyboard(label: str) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=label, request_location=True)]],
        resize_keyboard=True,
        one_time_keyboard=True
    )


def otp_force_reply() -> ForceReply:
    """Клиент отвечает кодом прямо на сообщение с просьбой ввести OTP."""
    return ForceReply(force_reply=True, selective=True)


# ==========================================
# МЕНЮ
# ==========================================

def main_menu_keyboard(menu: str, cart: str, addresses: str, settings: str) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=menu), KeyboardButton(text=cart)],
            [KeyboardButton(text=addresses), KeyboardButton(text=settings)],
        ],
        resize_keyboard=True
    )


def categories_keyboard(names: Iterable[str], return_label: str) -> ReplyKeyboardMarkup:
    """Категории по две в ряд + "Назад"."""
    buttons = [KeyboardButton(text=name) for name in names if name]
    rows = _chunk(buttons)
    rows.append([KeyboardButton(text=return_label)])
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True)


def products_keyboard(products: Iterable[Tuple[int, str]], return_label: str) -> InlineKeyboardMarkup:
    """Блюда по два в ряд (callback product:<id>) + возврат в главное меню."""
    buttons = [
        InlineKeyboardButton(text=name, callback_data=f"product:{product_id}")
        for product_id, name in products
    ]
    rows = _chunk(buttons)
    rows.append([InlineKeyboardButton(text=return_label, callback_data="main_menu")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def quantity_keyboard(product_id: int, quantity: int, add_label: str, return_label: str) -> InlineKeyboardMarkup:
    """
    ➖ [N] ➕ — количество живёт прямо в callback_data,
    в корзину оно попадает только по кнопке "В корзину".
    """
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="➖", callback_data=f"decrease_quantity:{product_id}:{quantity}"),
            InlineKeyboardButton(text=str(quantity), callback_data="quantity_info"),
            InlineKeyboardButton(text="➕", callback_data=f"increase_quantity:{product_id}:{quantity}"),
        ],
        [InlineKeyboardButton(text=add_label, callback_data=f"add_to_cart:{product_id}:{quantity}")],
        [InlineKeyboardButton(text=return_label, callback_data="back_to_products")],
    ])


def product_details_keyboard(product_id: int, add_label: str, return_label: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=add_label, callback_data=f"add_to_cart:{product_id}:1")],
        [InlineKeyboardButton(text=return_label, callback_data="back_to_products")],
    ])


# ==========================================
# КОРЗИНА И ЗАКАЗ
# ==========================================

def cart_keyboard(checkout_label: str, continue_label: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=checkout_label, callback_data="checkout")],
        [InlineKeyboardButton(text=continue_label, callback_data="main_menu")],
    ])


def checkout_addresses_keyboard(addresses, add_label: str) -> InlineKeyboardMarkup:
    """Выбор адреса при оформлении: address:<id> сразу ведёт к подтверждению."""
    rows = [
        [InlineKeyboardButton(
            text=f"{address.address_line} ({address.city})",
            callback_data=f"address:{address.id}"
        )]
        for address in addresses
    ]
    rows.append([InlineKeyboardButton(text=add_label, callback_data="add_address")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def address_selection_keyboard(addresses, add_label: str) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(
            text=f"{address.address_line}, {address.city}",
            callback_data=f"select_address:{address.id}"
        )]
        for address in addresses
    ]
    rows.append([InlineKeyboardButton(text=add_label, callback_data="add_address")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def addresses_list_keyboard(addresses, add_label: str, main_menu_label: str) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(
            text=f"{index}. {address.address_line}",
            callback_data=f"select_address:{address.id}"
        )]
        for index, address in enumerate(addresses, start=1)
    ]
    rows.append([InlineKeyboardButton(text=add_label, callback_data="add_address")])
    rows.append([InlineKeyboardButton(text=main_menu_label, callback_data="main_menu")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def order_confirmation_keyboard(confirm_label: str, cancel_label: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text=f"✅ {confirm_label}", callback_data="confirm_order"),
        InlineKeyboardButton(text=f"❌ {cancel_label}", callback_data="cancel_order"),
    ]])


def delete_data_keyboard(yes_label: str, no_label: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=yes_label, callback_data="confirm_delete_data")],
        [InlineKeyboardButton(text=no_label, callback_data="main_menu")],
    ])


def html(text) -> str:
    """Экранирование пользовательских строк для parse_mode=HTML."""
    return escape(str(text), quote=False)
