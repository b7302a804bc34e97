import logging

from stoq.application.interfaces import AuthAdminService

logger = logging.getLogger(__name__)


class ResolveUserEmailsUseCase:
    """user_id -> email через admin API провайдера авторизации. Ошибки по отдельным id пропускаются"""

    def __init__(self, auth_admin: AuthAdminService):
        self._auth = auth_admin

    async def __call__(self, user_ids: list[str]) -> dict[str, str]:
        emails = {}
        for user_id in dict.fromkeys(user_ids):
            try:
                email = await self._auth.get_user_email(user_id)
            except Exception as e:
                logger.warning(f"Не удалось получить email пользователя {user_id}: {e}")
                continue
            if email:
                emails[user_id] = email
        return emails
