"""
Wire-форматы очередей (JSON, snake_case)

image (out)          -> OcrTaskMessage
parsed (in)          -> OcrResultMessage (поля пунктов чека в PascalCase)
advice-tasks (out)   -> AdviceTaskMessage
advice-results (in)  -> AdviceResultMessage
"""
from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class OcrTaskMessage(_WireModel):
    task_id: UUID
    image_b64: str
    categories: list[str]


class OcrResultItem(_WireModel):
    name: str | None = Field(default=None, alias="Name")
    price: Decimal = Field(alias="Price")
    description: str | None = Field(default=None, alias="Description")
    transaction_date: date | None = Field(default=None, alias="TransactionDate")
    category: str | None = Field(default=None, alias="Category")
    transaction_type: str | None = Field(default=None, alias="TransactionType")


class OcrResultData(_WireModel):
    items: list[OcrResultItem] | None = None


class OcrResultMessage(_WireModel):
    task_id: str
    status: str | None = None
    data: OcrResultData | None = None
    error: str | None = None


class AdviceGoal(_WireModel):
    name: str
    target_date: date | None = None


class MonthlyStats(_WireModel):
    expenses_by_category: dict[str, Decimal]
    income_by_source: dict[str, Decimal]
    average_by_category: dict[str, Decimal]


class AdviceTaskMessage(_WireModel):
    task_id: str
    goal: AdviceGoal
    monthly_stats: dict[str, MonthlyStats]


class AdviceResultItem(_WireModel):
    id: int
    title: str | None = None
    priority: str | None = None
    description: str | None = None


class AdviceResultMessage(_WireModel):
    task_id: str
    status: str | None = None
    goal: str | None = None
    advice: list[AdviceResultItem] | None = None


def is_success(status: str | None) -> bool:
    return (status or "").strip().upper() == "SUCCESS"
