"""
Advice domain: task_id запросов совета и нормализация результата

task_id = base64url без padding от "user_<id>_<millis>". Воркер считает его
непрозрачным, ядро умеет извлечь из него user_id.
"""
import base64
import binascii

TASK_ID_PREFIX = "user"

GOAL_MAX_LENGTH = 500
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000

PRIORITIES = ("High", "Medium", "Low")


class TaskIdDecodeError(ValueError):
    """task_id не удалось разобрать"""


def encode_task_id(user_id: int, now_millis: int) -> str:
    raw = f"{TASK_ID_PREFIX}_{user_id}_{now_millis}".encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_user_id(task_id: str) -> int:
    """
    Извлечь user_id из task_id.

    Raises:
        TaskIdDecodeError: если task_id не base64url, не UTF-8 или не в формате user_<id>_...
    """
    if not task_id:
        raise TaskIdDecodeError("Empty task_id")
    padded = task_id + "=" * (-len(task_id) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise TaskIdDecodeError(f"task_id is not base64url: {task_id}") from e

    parts = decoded.split("_")
    if len(parts) < 2 or parts[0] != TASK_ID_PREFIX:
        raise TaskIdDecodeError(f"Unexpected task_id format: {decoded}")
    try:
        return int(parts[1])
    except ValueError as e:
        raise TaskIdDecodeError(f"task_id carries no user id: {decoded}") from e


def normalize_priority(priority: str | None) -> str:
    """High/Medium/Low без учёта регистра; прочие значения остаются как есть."""
    value = (priority or "").strip()
    for known in PRIORITIES:
        if value.lower() == known.lower():
            return known
    return value[:20]


def clip(text: str | None, limit: int) -> str:
    return (text or "")[:limit]
