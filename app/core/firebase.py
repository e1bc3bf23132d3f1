import json

import firebase_admin
from firebase_admin import credentials, auth

from app.core.config import settings
from app.core.logger import get_logger, mask_identifier

logger = get_logger(__name__)


def initialize_firebase() -> bool:
    """
    Inicializa Firebase solo si hay credenciales en FIREBASE_SERVICE_ACCOUNT_JSON.
    Sin credenciales el espejo de contraseñas queda desactivado.
    """
    if firebase_admin._apps:
        return True
    if not settings.FIREBASE_SERVICE_ACCOUNT_JSON:
        return False

    try:
        # Limpiamos posibles comillas extra de la variable de entorno
        cred_dict = json.loads(settings.FIREBASE_SERVICE_ACCOUNT_JSON.strip("'"))
        firebase_admin.initialize_app(credentials.Certificate(cred_dict))
        logger.info("🔥 Firebase: Inicializado mediante VARIABLE DE ENTORNO")
        return True
    except Exception as e:
        logger.error(f"❌ Error inicializando Firebase: {e}")
        return False


def sync_password(email: str, new_password: str) -> bool:
    """
    Replica la nueva contraseña en Firebase para el usuario con el mismo email.
    Si el usuario no existe en Firebase solo se registra y se sigue.
    """
    if not initialize_firebase():
        return False
    try:
        fb_user = auth.get_user_by_email(email)
        auth.update_user(fb_user.uid, password=new_password)
        logger.info(f"✅ Contraseña sincronizada en Firebase para {mask_identifier(email)}")
        return True
    except Exception as fb_error:
        logger.warning(f"⚠️ No se pudo actualizar en Firebase (posiblemente no existe): {fb_error}")
        return False
