# app/bot/state_machine.py
"""
🤖 МАШИНА СОСТОЯНИЙ ДИАЛОГА

Получает событие (текст, геолокация, контакт, нажатие кнопки),
смотрит на состояние сессии чата и решает:
- что ответить клиенту
- какие сервисы вызвать (OTP, корзина, заказ...)
- в какое состояние перейти

Порядок разбора сообщения (первое совпадение выигрывает):
1. ответ на сообщение с просьбой ввести OTP (в AWAITING_OTP) → проверка кода
2. таблица TRANSITIONS по (состояние, тип события)
3. текстовые команды: /start /help /settings /menu /deletedata,
   кнопки главного меню, названия категорий/блюд
4. напоминание "сначала завершите шаг"

События одного чата обрабатываются строго по очереди (lock из SessionStore).
Ни одно исключение не уходит в aiogram: клиент получает error.generic.
"""

from decimal import Decimal
from typing import Optional

from aiogram.types import ReplyKeyboardRemove

from app.bot import keyboards as kb
from app.bot.events import BotEvent, CallbackAction, ContactShared, LocationShared, TextMessage
from app.bot.i18n import Localizer
from app.bot.messenger import Messenger
from app.bot.services.addresses import AddressService
from app.bot.services.auth import AuthService, is_valid_phone, normalize_phone
from app.bot.services.cart import CartService
from app.bot.services.catalog import CatalogService
from app.bot.services.orders import OrderDraftService, OrderService, calculate_totals
from app.bot.services.user_service import UserService, to_ref
from app.bot.session import SessionStore, UserRef
from app.bot.states import STATE_REMINDERS, BotState, MenuCommand, MenuState
from app.schemas import AddressCreate, CartView, CreateOrderRequest, OrderItemRequest
from config.settings import config

import structlog

logger = structlog.get_logger()

PROTECTED_COMMANDS = ("/settings", "/menu", "/deletedata")

# Кнопки, которые работают и до подтверждения телефона
REGISTRATION_CALLBACKS = ("set_lang", "quantity_info")


def adjust_quantity(action: str, quantity: int) -> int:
    """➕ / ➖ на карточке блюда. Меньше 1 не бывает."""
    if action == "increase_quantity":
        return quantity + 1
    if action == "decrease_quantity":
        return max(1, quantity - 1)
    return max(1, quantity)


def format_money(value) -> str:
    value = Decimal(value)
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value:.2f}"


class ConversationStateMachine:
    """
    Один экземпляр на апдейт: сервисы работают в DB-сессии этого апдейта,
    а SessionStore общий для всего процесса.
    """

    # (состояние, тип события) → обработчик
    TRANSITIONS = {
        (BotState.AWAITING_ADDRESS, LocationShared): "_on_location",
        (BotState.AWAITING_ADDRESS_DETAILS, TextMessage): "_on_address_details",
        (BotState.AWAITING_PHONE, ContactShared): "_on_contact",
        (BotState.AWAITING_OTP, TextMessage): "_on_otp_submission",
    }

    def __init__(
        self,
        sessions: SessionStore,
        messenger: Messenger,
        localizer: Localizer,
        users: UserService,
        auth: AuthService,
        catalog: CatalogService,
        addresses: AddressService,
        carts: CartService,
        orders: OrderService,
        drafts: OrderDraftService,
        restaurant_id: Optional[int] = None,
    ):
        self.sessions = sessions
        self.messenger = messenger
        self.localizer = localizer
        self.users = users
        self.auth = auth
        self.catalog = catalog
        self.addresses = addresses
        self.carts = carts
        self.orders = orders
        self.drafts = drafts
        self.restaurant_id = restaurant_id or config.restaurant_id

    # ==========================================
    # ВХОД
    # ==========================================

    async def handle(self, event: BotEvent) -> None:
        chat_id = event.chat_id

        async with self.sessions.lock(chat_id):
            try:
                state_before = (await self.sessions.touch(chat_id)).current_state
                if isinstance(event, CallbackAction):
                    await self._on_callback(event)
                else:
                    await self._on_message(event)
                await self._persist_state(chat_id, state_before)
            except Exception as e:
                logger.exception(
                    "event_handling_failed",
                    chat_id=chat_id,
                    event_type=type(event).__name__,
                    error=str(e),
                )
                await self._send_key(chat_id, "error.generic")

    async def _persist_state(self, chat_id: int, state_before: BotState) -> None:
        """Снимок состояния в user_states, только если оно сменилось."""
        state = await self.sessions.get_state(chat_id)
        if state is state_before:
            return

        user = await self.sessions.get_user(chat_id)
        if user is not None:
            await self.users.save_state(user.id, state.value)

    async def _on_message(self, event: BotEvent) -> None:
        chat_id = event.chat_id
        state = await self.sessions.get_state(chat_id)

        if (
            isinstance(event, TextMessage)
            and state is BotState.AWAITING_OTP
            and event.reply_to_text is not None
            and event.reply_to_text == await self._t(chat_id, "otp.prompt")
        ):
            await self._on_otp_submission(event)
            return

        handler = self.TRANSITIONS.get((state, type(event)))
        if handler is not None:
            await getattr(self, handler)(event)
            return

        if isinstance(event, TextMessage):
            await self._on_text(event, state)
            return

        if state is BotState.START:
            await self._handle_start(chat_id)
            return

        reminder = STATE_REMINDERS.get(state)
        if reminder:
            await self._send_key(chat_id, reminder)
        else:
            logger.warning("unhandled_message", chat_id=chat_id, state=state.value, event_type=type(event).__name__)

    # ==========================================
    # ОТПРАВКА
    # ==========================================

    async def _t(self, chat_id: int, key: str, *args) -> str:
        return self.localizer.resolve(key, await self.sessions.get_locale(chat_id), *args)

    async def _send(self, chat_id: int, text: str, reply_markup=None) -> Optional[int]:
        message_id = await self.messenger.send_text(chat_id, text, reply_markup=reply_markup)
        if message_id is None and reply_markup is not None:
            await self.messenger.send_text(chat_id, await self._t(chat_id, "error.send_failed"))
        return message_id

    async def _send_key(self, chat_id: int, key: str, *args, reply_markup=None) -> Optional[int]:
        return await self._send(chat_id, await self._t(chat_id, key, *args), reply_markup)

    async def _current_user(self, chat_id: int) -> Optional[UserRef]:
        cached = await self.sessions.get_user(chat_id)
        if cached is not None:
            return cached

        user = await self.users.find_by_chat_id(chat_id)
        if user is None:
            return None

        ref = to_ref(user)
        await self.sessions.cache_user(ref)
        return ref

    # ==========================================
    # /start, ЯЗЫК, РЕГИСТРАЦИЯ
    # ==========================================

    async def _handle_start(self, chat_id: int) -> None:
        """Подтверждённый клиент → главное меню, остальные → выбор языка."""
        user = await self.users.find_by_chat_id(chat_id)

        if user is not None and user.phone_number and await self.users.is_phone_verified(user.id):
            await self.sessions.cache_user(to_ref(user))
            saved_locale = await self.users.get_saved_locale(user.id)
            if saved_locale:
                await self.sessions.set_locale(chat_id, saved_locale)

            await self.sessions.set_state(chat_id, BotState.REGISTERED)
            await self._send_key(chat_id, "welcome.back", kb.html(user.username))
            await self._show_main_menu(chat_id)
            return

        await self.sessions.set_state(chat_id, BotState.START)
        await self._prompt_language(chat_id)

    async def _prompt_language(self, chat_id: int) -> None:
        # Язык ещё не выбран, подсказка на языке по умолчанию
        text = self.localizer.resolve("language.select", self.localizer.default_locale)
        if await self._send(chat_id, text, kb.language_keyboard()) is not None:
            await self.sessions.set_state(chat_id, BotState.AWAITING_LANGUAGE)

    async def _on_language_selected(self, event: CallbackAction) -> None:
        locale = self.localizer.normalize(event.args[0] if event.args else None)
        chat_id = event.chat_id
        await self.sessions.set_locale(chat_id, locale)

        user = await self.users.find_by_chat_id(chat_id)
        if user is not None:
            await self.users.save_locale(user.id, locale)

        confirmation = await self._t(chat_id, "language.selected")
        if event.message_id is None or not await self.messenger.edit_text(chat_id, event.message_id, confirmation):
            await self._send(chat_id, confirmation)

        if user is not None and user.phone_number:
            await self.sessions.cache_user(to_ref(user))
            await self.sessions.set_state(chat_id, BotState.REGISTERED)
            await self._send_key(chat_id, "welcome.back", kb.html(user.username))
            await self._show_main_menu(chat_id)
            return

        await self._send_key(chat_id, "welcome.message", "Customer")
        await self._register(chat_id)

    async def _register(self, chat_id: int, first_name: Optional[str] = None) -> None:
        user = await self.users.register(chat_id, first_name, await self.sessions.get_locale(chat_id))
        await self.sessions.cache_user(to_ref(user))

        markup = kb.phone_request_keyboard(await self._t(chat_id, "button.register.share_phone"))
        if await self._send_key(chat_id, "register.prompt_phone", reply_markup=markup) is not None:
            await self.sessions.set_state(chat_id, BotState.AWAITING_PHONE)

    # ==========================================
    # ТЕЛЕФОН И OTP
    # ==========================================

    async def _on_contact(self, event: ContactShared) -> None:
        if not event.belongs_to_sender:
            await self._send_key(event.chat_id, "error.invalid_contact")
            await self._register(event.chat_id, event.first_name)
            return

        await self._send_otp(event.chat_id, event.phone_number)

    async def _send_otp(self, chat_id: int, phone_number: str) -> None:
        phone = normalize_phone(phone_number)
        if not is_valid_phone(phone):
            await self._send_key(chat_id, "error.invalid_phone_number")
            await self._register(chat_id)
            return

        try:
            otp_id = await self.auth.request_otp(phone, chat_id)
        except Exception as e:
            logger.error("otp_request_failed", chat_id=chat_id, error=str(e))
            await self._send_key(chat_id, "error.otp.request_failed")
            await self._register(chat_id)
            return

        await self.sessions.set_temporary_data(chat_id, "phone_number", phone)
        await self.sessions.set_temporary_data(chat_id, "otp_id", str(otp_id))

        await self._send_key(chat_id, "otp.prompt", reply_markup=kb.otp_force_reply())
        await self.sessions.set_state(chat_id, BotState.AWAITING_OTP)

    async def _on_otp_submission(self, event: TextMessage) -> None:
        chat_id = event.chat_id

        phone = await self.sessions.get_temporary_data(chat_id, "phone_number")
        if phone is None:
            await self._restart(chat_id, "error.generic")
            return

        otp_id = await self.sessions.get_temporary_data(chat_id, "otp_id")
        if otp_id is None:
            await self._restart(chat_id, "error.otp.expired_or_missing")
            return
        if not otp_id.isdigit():
            await self._restart(chat_id, "error.generic")
            return

        if not await self.auth.verify_otp(phone, event.text.strip(), int(otp_id)):
            await self._send_key(chat_id, "error.otp.invalid")
            await self._reissue_otp(chat_id, phone)
            return

        user = await self.users.set_phone(chat_id, phone)
        if user is not None:
            await self.users.mark_phone_verified(user.id)
            await self.sessions.cache_user(to_ref(user))
            await self.sessions.set_temporary_data(chat_id, "phone_verified", "true")

        logger.info("phone_verified", chat_id=chat_id)
        await self.sessions.clear_temporary_data(chat_id)
        await self._enter_address(chat_id)

    async def _reissue_otp(self, chat_id: int, phone: str) -> None:
        """Неверный код: отправляем новый и остаёмся в AWAITING_OTP."""
        try:
            otp_id = await self.auth.request_otp(phone, chat_id)
        except Exception as e:
            logger.error("otp_reissue_failed", chat_id=chat_id, error=str(e))
            await self._send_key(chat_id, "error.otp.request_failed")
            await self.sessions.clear_temporary_data(chat_id)
            await self._register(chat_id)
            return

        await self.sessions.set_temporary_data(chat_id, "otp_id", str(otp_id))
        await self._send_key(chat_id, "otp.prompt", reply_markup=kb.otp_force_reply())
        await self.sessions.set_state(chat_id, BotState.AWAITING_OTP)

    async def _restart(self, chat_id: int, error_key: str) -> None:
        await self._send_key(chat_id, error_key)
        await self.sessions.set_state(chat_id, BotState.START)
        await self._handle_start(chat_id)

    # ==========================================
    # АДРЕС
    # ==========================================

    async def _enter_address(self, chat_id: int) -> None:
        markup = kb.location_request_keyboard(await self._t(chat_id, "button.share_location"))
        if await self._send_key(chat_id, "address.prompt", reply_markup=markup) is not None:
            await self.sessions.set_state(chat_id, BotState.AWAITING_ADDRESS)

    async def _on_location(self, event: LocationShared) -> None:
        chat_id = event.chat_id
        await self.sessions.set_temporary_data(chat_id, "temp_latitude", str(event.latitude))
        await self.sessions.set_temporary_data(chat_id, "temp_longitude", str(event.longitude))

        await self._send_key(chat_id, "address.details_prompt", reply_markup=ReplyKeyboardRemove())
        await self.sessions.set_state(chat_id, BotState.AWAITING_ADDRESS_DETAILS)

    async def _on_address_details(self, event: TextMessage) -> None:
        """'ул. Навои 5, Ташкент' → address_line + city (город по умолчанию Unknown)."""
        chat_id = event.chat_id

        user = await self._current_user(chat_id)
        if user is None:
            await self._restart(chat_id, "error.auth.required")
            return

        latitude = await self.sessions.get_temporary_data(chat_id, "temp_latitude")
        longitude = await self.sessions.get_temporary_data(chat_id, "temp_longitude")
        if latitude is None or longitude is None:
            await self._enter_address(chat_id)
            return

        text = event.text.strip()
        if "," in text:
            line, city = (part.strip() for part in text.rsplit(",", 1))
        else:
            line, city = text, ""

        if not line:
            await self._send_key(chat_id, "address.details_prompt")
            return

        try:
            await self.addresses.save(user.id, AddressCreate(
                address_line=line,
                city=city or "Unknown",
                latitude=float(latitude),
                longitude=float(longitude),
            ))
        except Exception as e:
            logger.error("address_save_failed", chat_id=chat_id, error=str(e))
            await self._send_key(chat_id, "error.address.save_failed")
            await self._enter_address(chat_id)
            return

        await self.sessions.clear_temporary_data(chat_id)
        await self._send_key(chat_id, "address.saved")
        await self._show_main_menu(chat_id)

    async def _request_address(self, chat_id: int) -> None:
        """Адрес для заказа не выбран: выбрать из сохранённых или добавить."""
        user = await self._current_user(chat_id)
        existing = await self.addresses.list_for_user(user.id) if user else []

        if not existing:
            await self._enter_address(chat_id)
            return

        markup = kb.address_selection_keyboard(
            existing, await self._t(chat_id, "button.add_new_address")
        )
        await self._send_key(chat_id, "address.select_or_add", reply_markup=markup)

    async def _show_addresses(self, chat_id: int) -> None:
        user = await self._current_user(chat_id)
        if user is None:
            await self._send_key(chat_id, "error.auth.required")
            return

        existing = await self.addresses.list_for_user(user.id)
        markup = kb.addresses_list_keyboard(
            existing,
            await self._t(chat_id, "button.add_new_address"),
            await self._t(chat_id, "button.main_menu"),
        )

        if not existing:
            await self._send_key(chat_id, "address.none", reply_markup=markup)
            return

        lines = [
            f"{index}. {kb.html(address.address_line)}, {kb.html(address.city)}"
            for index, address in enumerate(existing, start=1)
        ]
        title = await self._t(chat_id, "address.list_title")
        await self._send(chat_id, title + "\n\n" + "\n".join(lines), markup)

    # ==========================================
    # ТЕКСТ: КОМАНДЫ И МЕНЮ
    # ==========================================

    async def _on_text(self, event: TextMessage, state: BotState) -> None:
        chat_id = event.chat_id
        text = event.text.strip()
        command = text.split()[0].split("@")[0] if text.startswith("/") else None

        if command == "/start":
            await self._handle_start(chat_id)
            return

        if command == "/help":
            await self._send_key(chat_id, "help.text")
            return

        if command in PROTECTED_COMMANDS:
            if state is not BotState.REGISTERED:
                await self._send_key(chat_id, "error.command.unavailable", command)
            elif command == "/settings":
                await self._show_settings(chat_id)
            elif command == "/menu":
                await self._show_main_menu(chat_id)
            else:
                await self._prompt_data_deletion(chat_id)
            return

        if state.is_browsing:
            await self._on_browsing_text(chat_id, text)
            return

        if state is BotState.START:
            await self._handle_start(chat_id)
            return

        reminder = STATE_REMINDERS.get(state)
        if reminder:
            await self._send_key(chat_id, reminder)
        else:
            await self._send_key(chat_id, "unknown.command", kb.html(text))

    async def _on_browsing_text(self, chat_id: int, text: str) -> None:
        locale = await self.sessions.get_locale(chat_id)
        menu_command = self.localizer.resolve_menu_command(text, locale)

        if menu_command is MenuCommand.MENU:
            await self._show_categories(chat_id)
        elif menu_command is MenuCommand.CART:
            await self._show_cart(chat_id)
        elif menu_command is MenuCommand.ADDRESSES:
            await self._show_addresses(chat_id)
        elif menu_command is MenuCommand.SETTINGS:
            await self._show_settings(chat_id)
        elif menu_command is MenuCommand.RETURN:
            await self._handle_return(chat_id)
        else:
            await self._on_catalog_name(chat_id, text, locale)

    async def _on_catalog_name(self, chat_id: int, text: str, locale: str) -> None:
        """Текст reply-кнопки категории или блюда, в зависимости от MenuState."""
        menu_state = await self.sessions.get_menu_state(chat_id)

        if menu_state is MenuState.CATEGORY_VIEW:
            category = await self.catalog.find_category_by_name(text, locale)
            if category is not None:
                await self._show_products(chat_id, category.id)
                return

        elif menu_state is MenuState.PRODUCT_VIEW:
            category_id = await self.sessions.get_temporary_data(chat_id, "current_category_id")
            if category_id and category_id.isdigit():
                product = await self.catalog.find_product_by_name(int(category_id), text, locale)
                if product is not None:
                    await self._show_product_details(chat_id, product.id)
                    return

        await self._send_key(chat_id, "unknown.command", kb.html(text))

    async def _show_main_menu(self, chat_id: int) -> None:
        await self.sessions.set_state(chat_id, BotState.REGISTERED)
        await self.sessions.set_menu_state(chat_id, MenuState.MAIN_MENU)

        locale = await self.sessions.get_locale(chat_id)
        markup = kb.main_menu_keyboard(
            self.localizer.label(MenuCommand.MENU, locale),
            self.localizer.label(MenuCommand.CART, locale),
            self.localizer.label(MenuCommand.ADDRESSES, locale),
            self.localizer.label(MenuCommand.SETTINGS, locale),
        )
        await self._send_key(chat_id, "main_menu.prompt", reply_markup=markup)

    async def _show_settings(self, chat_id: int) -> None:
        markup = kb.language_keyboard(return_label=await self._t(chat_id, "button.return"))
        await self._send_key(chat_id, "language.select", reply_markup=markup)

    async def _handle_return(self, chat_id: int) -> None:
        menu_state = await self.sessions.get_menu_state(chat_id)

        if menu_state is MenuState.PRODUCT_VIEW:
            await self._show_categories(chat_id)
        else:
            await self._show_main_menu(chat_id)

        await self.sessions.set_previous_state(chat_id, BotState.REGISTERED)

    async def _prompt_data_deletion(self, chat_id: int) -> None:
        markup = kb.delete_data_keyboard(
            await self._t(chat_id, "button.delete_yes"),
            await self._t(chat_id, "button.delete_no"),
        )
        await self._send_key(chat_id, "data.delete_confirm", reply_markup=markup)

    async def _delete_data(self, chat_id: int) -> None:
        text = await self._t(chat_id, "data.deleted")
        await self.users.delete_data(chat_id)
        await self.sessions.delete(chat_id)
        await self._send(chat_id, text, ReplyKeyboardRemove())

    # ==========================================
    # КАТАЛОГ
    # ==========================================

    async def _show_categories(self, chat_id: int) -> None:
        await self.sessions.set_previous_state(chat_id, await self.sessions.get_state(chat_id))
        await self.sessions.set_menu_state(chat_id, MenuState.CATEGORY_VIEW)

        locale = await self.sessions.get_locale(chat_id)
        categories = await self.catalog.categories_by_restaurant(self.restaurant_id)

        markup = kb.categories_keyboard(
            (self.localizer.localized_name(category, locale) for category in categories),
            await self._t(chat_id, "button.return"),
        )
        await self._send_key(chat_id, "category.choose", reply_markup=markup)

    async def _show_products(self, chat_id: int, category_id: int) -> None:
        if await self.catalog.category_by_id(category_id) is None:
            await self._send_key(chat_id, "error.category_not_found")
            return

        await self.sessions.set_previous_state(chat_id, await self.sessions.get_state(chat_id))
        await self.sessions.set_menu_state(chat_id, MenuState.PRODUCT_VIEW)
        await self.sessions.set_temporary_data(chat_id, "current_category_id", str(category_id))

        locale = await self.sessions.get_locale(chat_id)
        products = await self.catalog.products_by_category(category_id)

        markup = kb.products_keyboard(
            ((product.id, self.localizer.localized_name(product, locale)) for product in products),
            await self._t(chat_id, "button.return"),
        )
        key = "product.choose" if products else "product.none_in_category"
        await self._send_key(chat_id, key, reply_markup=markup)

    async def _product_card(self, chat_id: int, product, quantity: int) -> str:
        locale = await self.sessions.get_locale(chat_id)
        return (
            f"<b>{kb.html(self.localizer.localized_name(product, locale))}</b>\n"
            f"{await self._t(chat_id, 'price')}: {format_money(product.price)} {product.currency}\n"
            f"{await self._t(chat_id, 'quantity')}: {quantity}"
        )

    async def _on_product_selected(self, chat_id: int, product_id: int) -> None:
        product = await self.catalog.product_by_id(product_id)
        if product is None:
            await self._send_key(chat_id, "error.product_not_found")
            return

        markup = kb.quantity_keyboard(
            product.id, 1,
            await self._t(chat_id, "button.add_to_cart"),
            await self._t(chat_id, "button.return"),
        )
        await self._send(chat_id, await self._product_card(chat_id, product, 1), markup)

    async def _show_product_details(self, chat_id: int, product_id: int) -> None:
        product = await self.catalog.product_by_id(product_id)
        if product is None:
            await self._send_key(chat_id, "error.product_not_found")
            return

        locale = await self.sessions.get_locale(chat_id)
        text = f"<b>{kb.html(self.localizer.localized_name(product, locale))}</b>\n\n"
        if product.description:
            text += f"{kb.html(product.description)}\n\n"
        text += f"<b>{await self._t(chat_id, 'price')}: {format_money(product.price)} {product.currency}</b>"

        markup = kb.product_details_keyboard(
            product.id,
            await self._t(chat_id, "button.add_to_cart"),
            await self._t(chat_id, "button.return"),
        )
        await self._send(chat_id, text, markup)

    async def _on_quantity_action(self, event: CallbackAction) -> None:
        chat_id = event.chat_id
        if len(event.args) < 2 or not all(arg.isdigit() for arg in event.args[:2]):
            await self._send_key(chat_id, "unknown.command", kb.html(event.data))
            return

        product_id, quantity = int(event.args[0]), int(event.args[1])

        if event.command == "add_to_cart":
            if quantity <= 0:
                await self._send_key(chat_id, "error.invalid_quantity")
                return
            await self.carts.add_item(chat_id, product_id, quantity)
            await self._send_key(chat_id, "cart.added_items", quantity)
            await self._show_cart(chat_id)
            return

        quantity = adjust_quantity(event.command, quantity)

        product = await self.catalog.product_by_id(product_id)
        if product is None:
            await self._send_key(chat_id, "error.product_not_found")
            return

        text = await self._product_card(chat_id, product, quantity)
        markup = kb.quantity_keyboard(
            product.id, quantity,
            await self._t(chat_id, "button.add_to_cart"),
            await self._t(chat_id, "button.return"),
        )
        if event.message_id is None or not await self.messenger.edit_text(chat_id, event.message_id, text, markup):
            await self._send(chat_id, text, markup)

    # ==========================================
    # КОРЗИНА И ОФОРМЛЕНИЕ
    # ==========================================

    async def _cart_lines(self, chat_id: int, cart: CartView) -> str:
        locale = await self.sessions.get_locale(chat_id)
        return "\n".join(
            f"{kb.html(self.localizer.localized_name(line.product, locale))} x {line.quantity}"
            f" = {format_money(line.line_total)}"
            for line in cart.items
        )

    async def _show_cart(self, chat_id: int) -> None:
        try:
            cart = await self.carts.get_cart(chat_id)
        except Exception as e:
            logger.error("cart_view_failed", chat_id=chat_id, error=str(e))
            await self._send_key(chat_id, "error.cart.view_failed")
            return

        if cart.is_empty:
            await self._send_key(chat_id, "cart.empty")
            return

        text = (
            f"{await self._t(chat_id, 'cart.title')}\n\n"
            f"{await self._cart_lines(chat_id, cart)}\n\n"
            f"{await self._t(chat_id, 'cart.total')}: {format_money(cart.subtotal)}"
        )
        markup = kb.cart_keyboard(
            await self._t(chat_id, "button.checkout"),
            await self._t(chat_id, "button.continue_shopping"),
        )
        await self._send(chat_id, text, markup)

    async def _checkout(self, chat_id: int) -> None:
        user = await self._current_user(chat_id)
        if user is None:
            await self._restart(chat_id, "error.auth.required")
            return

        try:
            cart = await self.carts.get_cart(chat_id)
            if cart.is_empty:
                await self._send_key(chat_id, "cart.empty")
                return

            existing = await self.addresses.list_for_user(user.id)
        except Exception as e:
            logger.error("checkout_failed", chat_id=chat_id, error=str(e))
            await self._send_key(chat_id, "error.checkout")
            return

        if not existing:
            await self._send_key(chat_id, "checkout.no_addresses")
            await self._enter_address(chat_id)
            return

        markup = kb.checkout_addresses_keyboard(
            existing, await self._t(chat_id, "button.add_new_address")
        )
        await self._send_key(chat_id, "checkout.select_address", reply_markup=markup)
        await self.sessions.set_state(chat_id, BotState.AWAITING_ADDRESS_SELECTION)

    async def _proceed_to_confirmation(self, chat_id: int) -> None:
        cart = await self.carts.get_cart(chat_id)
        if cart.is_empty:
            await self._send_key(chat_id, "cart.empty")
            return

        await self.sessions.set_state(chat_id, BotState.REGISTERED)

        totals = calculate_totals(cart.subtotal)
        t = self._t
        text = (
            f"<b>{await t(chat_id, 'order.summary_title')}</b>\n\n"
            f"{await self._cart_lines(chat_id, cart)}\n\n"
            f"{await t(chat_id, 'order.subtotal')}: {format_money(totals.subtotal)} {config.currency}\n"
            f"{await t(chat_id, 'order.service_fee')}: {format_money(totals.service_charge)} {config.currency}\n"
            f"{await t(chat_id, 'order.delivery_fee')}: {format_money(totals.delivery_fee)} {config.currency}\n"
            f"{await t(chat_id, 'order.discount')}: -{format_money(totals.discount)} {config.currency}\n\n"
            f"<b>{await t(chat_id, 'order.total_label')}: {format_money(totals.total)} {config.currency}</b>\n\n"
            f"{await t(chat_id, 'order.payment_cash')}"
        )
        markup = kb.order_confirmation_keyboard(
            await t(chat_id, "button.confirm_order"),
            await t(chat_id, "button.cancel"),
        )
        await self._send(chat_id, text, markup)

    async def _confirm_order(self, chat_id: int) -> None:
        """
        Создать заказ из корзины.
        Корзина очищается только после того, как заказ записан в БД.
        """
        user = await self._current_user(chat_id)
        if user is None:
            await self._restart(chat_id, "error.auth.required")
            return

        cart = await self.carts.get_cart(chat_id)
        if cart.is_empty:
            await self._send_key(chat_id, "cart.empty")
            return

        address_id = await self.drafts.get_address_id(chat_id)
        if address_id is None:
            await self._send_key(chat_id, "error.address.required")
            await self._request_address(chat_id)
            return

        request = CreateOrderRequest(
            restaurant_id=self.restaurant_id,
            address_id=address_id,
            items=[
                OrderItemRequest(product_id=line.product.id, quantity=line.quantity)
                for line in cart.items
            ],
            payment_option=await self.drafts.get_payment_option(chat_id),
        )

        try:
            order = await self.orders.create_order(user.id, request)
        except Exception as e:
            logger.error("order_create_failed", chat_id=chat_id, error=str(e))
            await self._send_key(chat_id, "order.failed")
            return

        await self.carts.clear_cart(chat_id)

        text = "\n".join([
            await self._t(chat_id, "order.confirmed"),
            await self._t(chat_id, "order.id", order.id),
            await self._t(chat_id, "order.total", format_money(order.total_amount)),
        ])
        await self._send(chat_id, text)
        await self._show_main_menu(chat_id)

    # ==========================================
    # CALLBACK-КНОПКИ
    # ==========================================

    async def _on_callback(self, event: CallbackAction) -> None:
        chat_id = event.chat_id
        command = event.command

        state = await self.sessions.get_state(chat_id)
        if state is BotState.START and command != "set_lang":
            await self._handle_start(chat_id)
            return

        # Старые кнопки в истории чата: до подтверждения телефона только напоминание
        if state.is_registration and command not in REGISTRATION_CALLBACKS:
            logger.info("callback_rejected", chat_id=chat_id, state=state.value, command=command)
            await self._send_key(chat_id, STATE_REMINDERS[state])
            return

        if event.has_args:
            await self._on_callback_with_args(event)
            return

        if command == "main_menu":
            await self._show_main_menu(chat_id)
        elif command == "view_cart":
            await self._show_cart(chat_id)
        elif command == "checkout":
            await self._checkout(chat_id)
        elif command == "back_to_products":
            await self._show_categories(chat_id)
        elif command == "confirm_order":
            await self._drop_buttons(event)
            await self._confirm_order(chat_id)
        elif command == "cancel_order":
            await self._drop_buttons(event)
            await self._send_key(chat_id, "order.cancelled")
            await self._show_main_menu(chat_id)
        elif command == "add_address":
            await self._enter_address(chat_id)
        elif command == "confirm_delete_data":
            await self._delete_data(chat_id)
        elif command == "quantity_info":
            pass
        else:
            await self._send_key(chat_id, "unknown.command", kb.html(event.data))

    async def _drop_buttons(self, event: CallbackAction) -> None:
        # Сводку заказа нельзя подтвердить дважды
        if event.message_id is not None:
            await self.messenger.edit_reply_markup(event.chat_id, event.message_id)

    async def _on_callback_with_args(self, event: CallbackAction) -> None:
        chat_id = event.chat_id
        command = event.command
        arg = event.args[0] if event.args else ""

        if command in ("increase_quantity", "decrease_quantity", "add_to_cart"):
            await self._on_quantity_action(event)
            return

        if command == "set_lang":
            await self._on_language_selected(event)
            return

        if command not in ("product", "category", "address", "select_address") or not arg.isdigit():
            await self._send_key(chat_id, "unknown.command", kb.html(event.data))
            return

        if command == "product":
            await self._on_product_selected(chat_id, int(arg))
        elif command == "category":
            await self._show_products(chat_id, int(arg))
        elif command == "address":
            # выбор адреса при оформлении → сразу подтверждение заказа
            await self.drafts.set_address(chat_id, int(arg))
            await self._proceed_to_confirmation(chat_id)
        else:
            await self.drafts.set_address(chat_id, int(arg))
            await self._send_key(chat_id, "address.selected")
            await self._show_main_menu(chat_id)
