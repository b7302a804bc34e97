import httpx
import logging
from typing import Optional

from stoq.application.interfaces import AuthAdminService
from stoq.domain.exceptions import AuthServiceError

logger = logging.getLogger(__name__)


class HTTPAuthAdminClient(AuthAdminService):
    """Admin API провайдера авторизации. Ключ service role живет только на сервере"""

    def __init__(self, base_url: str, service_role_key: str):
        self._base_url = base_url.rstrip("/")
        self._service_role_key = service_role_key

    async def get_user_email(self, user_id: str) -> Optional[str]:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self._base_url}/auth/v1/admin/users/{user_id}",
                    headers={
                        "apikey": self._service_role_key,
                        "Authorization": f"Bearer {self._service_role_key}"
                    },
                    timeout=10.0
                )

                if response.status_code == 200:
                    data = response.json()
                    user = data.get("user", data)
                    return user.get("email")
                elif response.status_code == 404:
                    return None
                else:
                    raise AuthServiceError(f"Auth service ошибка: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Auth service ошибка подключения: {e}")
            raise AuthServiceError(f"Auth service не доступен: {str(e)}")
