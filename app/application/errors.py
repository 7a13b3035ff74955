"""
Ошибки прикладного слоя

Маппинг на HTTP делается в app.main (exception handlers):
- NotFoundError -> 404
- BadRequestError и наследники -> 400
- ConflictError -> 400
- MessagingDisabledError -> 503
"""


class NotFoundError(LookupError):
    """Сущность не найдена или не принадлежит пользователю"""
    pass


class BadRequestError(ValueError):
    """Некорректный ввод"""
    pass


class ConflictError(Exception):
    """Нарушение уникальности (email, advice task_id)"""
    pass


class MessagingDisabledError(RuntimeError):
    """Шина сообщений выключена (RABBIT_ENABLED=false)"""
    pass


def not_found(entity: str, entity_id, user_id: int | None = None) -> NotFoundError:
    if user_id is None:
        return NotFoundError(f"{entity} with id {entity_id} not found")
    return NotFoundError(f"{entity} with id {entity_id} not found for user {user_id}")
