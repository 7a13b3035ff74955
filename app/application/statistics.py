"""
Statistics use case - отчёт по операциям пользователя за 1/3/6/12 месяцев
"""
from datetime import date

from sqlalchemy.orm import Session

from app.application.errors import BadRequestError
from app.application.transactions import TransactionQueryService
from app.domain.recurrence import add_months
from app.domain.statistics import ALLOWED_MONTHS, StatisticsReport, StatRow, build_report
from app.utils.clock import today as current_date


class StatisticsValidationError(BadRequestError):
    """Недопустимый период статистики"""
    pass


def to_stat_rows(transactions) -> list[StatRow]:
    return [
        StatRow(
            type=t.type,
            amount=t.amount,
            date=t.date,
            category_name=t.category.name if t.category is not None else None,
        )
        for t in transactions
    ]


class TransactionStatisticsService:
    """
    Окно: [today - months, today] включительно, по календарным датам операций
    """

    def __init__(self, db: Session):
        self.db = db
        self.queries = TransactionQueryService(db)

    def execute(self, user_id: int, months: int, today: date | None = None) -> StatisticsReport:
        if months not in ALLOWED_MONTHS:
            raise StatisticsValidationError(
                f"months must be one of {', '.join(str(m) for m in ALLOWED_MONTHS)}"
            )

        end_date = today or current_date()
        start_date = add_months(end_date, -months)

        transactions = self.queries.filter(user_id, date_from=start_date, date_to=end_date)
        return build_report(to_stat_rows(transactions), start_date, end_date)
