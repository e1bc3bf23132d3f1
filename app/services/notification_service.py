from typing import Optional

from app.core.enums import ResetChannel
from app.core.exceptions import DeliveryFailure
from app.core.logger import get_logger, mask_identifier
from app.services.email_service import EmailService
from app.services.sms_service import SmsService

logger = get_logger(__name__)


class NotificationDispatcher:
    """Entrega el código por el canal elegido. El resultado nunca cambia la respuesta al cliente."""

    def dispatch(self, channel: ResetChannel, identifier: str, code: str, name: Optional[str] = None) -> Optional[str]:
        try:
            if channel == ResetChannel.EMAIL:
                message_id = EmailService.send_otp_email(identifier, code, name)
            elif channel == ResetChannel.PHONE:
                message_id = SmsService.send_otp_sms(identifier, code)
            else:
                raise DeliveryFailure(f"Canal no soportado: {channel}")

            if message_id is None:
                raise DeliveryFailure(f"El proveedor de {channel.value} no confirmó el envío")
            return message_id
        except DeliveryFailure as e:
            logger.warning(f"⚠️ Entrega fallida a {mask_identifier(identifier)}: {e}")
            return None
        except Exception as e:
            logger.exception(f"⚠️ Entrega fallida a {mask_identifier(identifier)}: error inesperado del proveedor: {e}")
            return None


dispatcher = NotificationDispatcher()
