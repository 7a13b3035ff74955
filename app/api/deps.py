"""
FastAPI dependencies (DB session, authentication, message publisher)
"""
from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.application.errors import MessagingDisabledError
from app.infrastructure.db.session import get_db as _get_db
from app.infrastructure.messaging.bus import get_message_bus
from app.infrastructure.messaging.publisher import MessagePublisher


# Re-export get_db для удобства
get_db = _get_db


class ApiModel(BaseModel):
    """
    Базовая модель запросов/ответов: camelCase в JSON, snake_case в коде
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def get_current_user_id(request: Request) -> int:
    """
    ID пользователя из session

    Raises:
        HTTPException(401): если не залогинен
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return int(user_id)


def authorize_user(user_id: int, current_user_id: int = Depends(get_current_user_id)) -> int:
    """
    Проверка, что {user_id} из пути совпадает с залогиненным пользователем

    Usage:
        @router.get("/api/v1/users/{user_id}/accounts")
        def list_accounts(user_id: int = Depends(authorize_user), ...):
            ...

    Raises:
        HTTPException(403): чужой user_id
    """
    if user_id != current_user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )
    return user_id


def get_publisher() -> MessagePublisher:
    """
    Publisher шины сообщений

    Raises:
        MessagingDisabledError: RABBIT_ENABLED=false (-> 503)
    """
    bus = get_message_bus()
    if bus is None:
        raise MessagingDisabledError("Message bus is disabled")
    return bus.publisher
