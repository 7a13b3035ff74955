"""
Advice API endpoints
"""
from datetime import date as date_type, datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import ApiModel, authorize_user, get_db, get_publisher
from app.application.advices import RecentAdvicesService, RequestAdviceUseCase
from app.config import get_settings
from app.infrastructure.db.models import Advice
from app.infrastructure.messaging.publisher import MessagePublisher


router = APIRouter(prefix="/api/v1/users/{user_id}/advices", tags=["advices"])


class AdviceRequest(ApiModel):
    goal: str
    target_date: date_type | None = None


class AdviceAcceptedResponse(ApiModel):
    task_id: str
    message: str


class AdviceItemResponse(ApiModel):
    item_order: int
    title: str
    priority: str
    description: str


class AdviceResponse(ApiModel):
    id: int
    goal: str
    target_date: date_type | None
    created_at: datetime | None
    items: list[AdviceItemResponse]


def _to_response(advice: Advice) -> AdviceResponse:
    return AdviceResponse(
        id=advice.id,
        goal=advice.goal,
        target_date=advice.target_date,
        created_at=advice.created_at,
        items=[
            AdviceItemResponse(
                item_order=item.item_order,
                title=item.title,
                priority=item.priority,
                description=item.description,
            )
            for item in advice.items
        ],
    )


@router.post("", response_model=AdviceAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
def request_advice(
    req: AdviceRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
    publisher: MessagePublisher = Depends(get_publisher),
):
    """Запросить совет: ответ придёт асинхронно (см. /recent)"""
    use_case = RequestAdviceUseCase(db, publisher, get_settings().RABBIT_QUEUE_ADVICE_TASKS)
    task_id = use_case.execute(user_id, req.goal, req.target_date)
    return AdviceAcceptedResponse(task_id=task_id, message="Advice request accepted")


@router.get("/recent", response_model=list[AdviceResponse])
def recent_advices(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    """Советы за последние ADVICE_RECENT_DAYS дней"""
    advices = RecentAdvicesService(db).execute(user_id, days=get_settings().ADVICE_RECENT_DAYS)
    return [_to_response(a) for a in advices]
