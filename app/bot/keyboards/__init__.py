"""Инициализация клавиатур."""

from .client import (
    address_selection_keyboard,
    addresses_list_keyboard,
    cart_keyboard,
    categories_keyboard,
    checkout_addresses_keyboard,
    delete_data_keyboard,
    html,
    language_keyboard,
    location_request_keyboard,
    main_menu_keyboard,
    order_confirmation_keyboard,
    otp_force_reply,
    phone_request_keyboard,
    product_details_keyboard,
    products_keyboard,
    quantity_keyboard,
)

__all__ = [
    "address_selection_keyboard",
    "addresses_list_keyboard",
    "cart_keyboard",
    "categories_keyboard",
    "checkout_addresses_keyboard",
    "delete_data_keyboard",
    "html",
    "language_keyboard",
    "location_request_keyboard",
    "main_menu_keyboard",
    "order_confirmation_keyboard",
    "otp_force_reply",
    "phone_request_keyboard",
    "product_details_keyboard",
    "products_keyboard",
    "quantity_keyboard",
]
