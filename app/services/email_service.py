from typing import Optional

import resend

from app.core.config import settings
from app.core.logger import get_logger, mask_identifier

logger = get_logger(__name__)

resend.api_key = settings.RESEND_API_KEY

class EmailService:
    @staticmethod
    def send_otp_email(email_to: str, code: str, name: Optional[str] = None) -> Optional[str]:
        """
        Envía el código de recuperación por Resend.
        Retorna el id del mensaje o None si el envío falló (el error solo se registra).
        """
        if not settings.RESEND_API_KEY:
            logger.error(f"❌ RESEND_API_KEY no configurada, no se envió el código a {mask_identifier(email_to)}")
            return None

        saludo = f"Hola {name}," if name else "Hola,"
        try:
            params = {
                "from": f"{settings.PROJECT_NAME} <{settings.SENDER_EMAIL}>",
                "to": [email_to],
                "subject": f"{code} es tu código para restablecer la contraseña",
                "html": f"""
                <div style="font-family: sans-serif; max-width: 400px; margin: auto; border: 1px solid #eee; padding: 20px; border-radius: 10px;">
                    <h2 style="color: #4CAF50; text-align: center;">{settings.PROJECT_NAME}</h2>
                    <p>{saludo}</p>
                    <p>Has solicitado restablecer tu contraseña. Usa el siguiente código:</p>
                    <div style="background: #f4f4f4; padding: 20px; text-align: center; font-size: 32px; font-weight: bold; letter-spacing: 10px; color: #333;">
                        {code}
                    </div>
                    <p style="font-size: 12px; color: #777; margin-top: 20px;">
                        Este código expirará en {settings.OTP_TTL_MINUTES} minutos. Si no solicitaste este cambio, ignora este correo.
                    </p>
                </div>
                """
            }
            email = resend.Emails.send(params)
            message_id = email.get("id") if isinstance(email, dict) else getattr(email, "id", None)
            logger.info(f"📧 Código enviado por email a {mask_identifier(email_to)} (id={message_id})")
            return message_id
        except Exception as e:
            logger.error(f"❌ Error enviando correo con Resend a {mask_identifier(email_to)}: {e}")
            return None
