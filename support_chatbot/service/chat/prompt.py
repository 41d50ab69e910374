from typing import Optional, Sequence

from support_chatbot.config.config import ChatbotSettings
from support_chatbot.model.chat.chat_request import OrderSummary, VisitorProfile

NO_ORDERS_MESSAGE = "No order history available."


def _status_label(status: str) -> str:
    # "on-hold" -> "On hold"
    return status.replace("-", " ").replace("_", " ").strip().capitalize()


def orders_summary(orders: Sequence[OrderSummary]) -> str:
    """Plain-text digest of the visitor's recent orders for the system prompt."""
    if not orders:
        return NO_ORDERS_MESSAGE

    lines = [f"Here are the last {len(orders)} orders:", ""]
    for order in orders:
        header = f"Order #{order.order_number}"
        if order.date_created is not None:
            header += f" placed on {order.date_created.strftime('%B')} {order.date_created.day}, {order.date_created.year}"
        lines.append(header)
        lines.append(f"Status: {_status_label(order.status)}")
        if order.total is not None:
            lines.append(f"Total: {order.total:.2f} {order.currency}".rstrip())
        items = ", ".join(f"{item.quantity}x {item.name}" for item in order.items)
        lines.append(f"Items: {items}")
        lines.append("")
    return "\n".join(lines).rstrip()


def build_system_prompt(base_prompt: str, visitor: Optional[VisitorProfile] = None) -> str:
    if visitor is None:
        return base_prompt

    sections = [base_prompt]
    if visitor.display_name:
        sections.append(f"The customer's name is {visitor.display_name}.")
    if visitor.orders:
        sections.append(orders_summary(visitor.orders))
    return "\n\n".join(sections)


def welcome_message(settings: ChatbotSettings, display_name: Optional[str] = None) -> str:
    name = (display_name or "").strip()
    if name:
        return settings.welcome_message_logged_in.replace("{name}", name)
    return settings.welcome_message_guest
