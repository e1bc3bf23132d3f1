from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from app.core.config import settings
from app.core.logger import get_logger, mask_identifier

logger = get_logger(__name__)

# Límite de Twilio para el cuerpo de un SMS
MAX_SMS_LENGTH = 1600

class SmsService:
    """Envío de SMS con Twilio. Nunca lanza excepciones hacia el flujo de recuperación."""

    _client: Optional[TwilioClient] = None

    @classmethod
    def get_client(cls) -> Optional[TwilioClient]:
        if cls._client is None:
            if not (settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER):
                logger.error("❌ Credenciales de Twilio no configuradas")
                return None
            cls._client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
            logger.info("📱 Cliente de Twilio inicializado")
        return cls._client

    @classmethod
    def send_sms(cls, phone_to: str, body: str) -> Optional[str]:
        if not phone_to or not body:
            logger.error("❌ Teléfono y mensaje son obligatorios para enviar un SMS")
            return None
        if len(body) > MAX_SMS_LENGTH:
            logger.error(f"❌ Mensaje de {len(body)} caracteres supera el máximo de {MAX_SMS_LENGTH}")
            return None

        try:
            client = cls.get_client()
            if client is None:
                return None

            message = client.messages.create(
                to=phone_to,
                from_=settings.TWILIO_PHONE_NUMBER,
                body=body,
            )
            logger.info(f"📱 SMS enviado a {mask_identifier(phone_to)} (sid={message.sid}, status={message.status})")
            return message.sid
        except TwilioException as e:
            logger.error(f"❌ Error de Twilio enviando SMS a {mask_identifier(phone_to)}: {e}")
            return None
        except Exception as e:
            logger.error(f"❌ Error del servicio SMS para {mask_identifier(phone_to)}: {e}")
            return None

    @classmethod
    def send_otp_sms(cls, phone_to: str, code: str) -> Optional[str]:
        body = f"Tu código para restablecer la contraseña es: {code}. Expira en {settings.OTP_TTL_MINUTES} minutos."
        return cls.send_sms(phone_to, body)
