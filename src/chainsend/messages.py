"""User-facing message strings."""

from typing import Optional

from chainsend.config import get_settings

NO_TOKEN_SELECTED = "no_token_selected"
NO_RECIPIENT = "no_recipient"
INVALID_RECIPIENT = "invalid_recipient"
NO_ACTIVE_WALLET = "no_active_wallet"
TOKEN_NOT_SUPPORTED = "token_not_supported"
DESTINATION_NOT_SUPPORTED = "destination_not_supported"
TX_DECLINED_BY_USER = "tx_declined_by_user"
SEND_FAILED = "send_failed"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        NO_TOKEN_SELECTED: "No token selected",
        NO_RECIPIENT: "No recipient address provided",
        INVALID_RECIPIENT: "Invalid recipient address",
        NO_ACTIVE_WALLET: "No active wallet",
        TOKEN_NOT_SUPPORTED: "We do not support transferring this token yet",
        DESTINATION_NOT_SUPPORTED: "Destination chain not supported",
        TX_DECLINED_BY_USER: "Transaction declined by the user.",
        SEND_FAILED: "Failed to send tokens",
    },
    "es": {
        NO_TOKEN_SELECTED: "Ningún token seleccionado",
        NO_RECIPIENT: "No se proporcionó la dirección del destinatario",
        INVALID_RECIPIENT: "Dirección de destinatario no válida",
        NO_ACTIVE_WALLET: "No hay una billetera activa",
        TOKEN_NOT_SUPPORTED: "Todavía no admitimos la transferencia de este token",
        DESTINATION_NOT_SUPPORTED: "La cadena de destino no es compatible",
        TX_DECLINED_BY_USER: "Transacción rechazada por el usuario.",
        SEND_FAILED: "No se pudieron enviar los tokens",
    },
}

DEFAULT_LOCALE = "en"


def translate(key: str, locale: Optional[str] = None) -> str:
    """Look up a message, falling back to English."""
    locale = (locale or get_settings().locale or DEFAULT_LOCALE).lower()
    table = MESSAGES.get(locale) or MESSAGES[DEFAULT_LOCALE]
    return table.get(key) or MESSAGES[DEFAULT_LOCALE][key]
