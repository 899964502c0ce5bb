from typing import Dict, Optional

from fastapi import HTTPException, status


class RedirectError(HTTPException):
    """Ошибка, после которой клиент должен перейти на другой маршрут"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        redirect_to: str,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.redirect_to = redirect_to


class SessionRequired(RedirectError):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            redirect_to="/auth",
            headers={"WWW-Authenticate": "Bearer"},
        )


class GatewayError(Exception):
    """Ошибка шлюза поиска треков; отдается клиенту как {"error": ...}"""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
