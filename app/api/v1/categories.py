"""
Category API endpoints
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.deps import ApiModel, authorize_user, get_current_user_id, get_db
from app.application.categories import (
    CreateCategoryUseCase,
    DeleteCategoryUseCase,
    ListCategoriesService,
    UpdateCategoryUseCase,
)
from app.domain.category import CategoryType
from app.infrastructure.db.models import Category


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


# === Request/Response models ===

class CategoryInput(ApiModel):
    name: str
    icon: str | None = None
    color: str | None = None
    category_type: CategoryType | None = None


class CategoryUpdateRequest(ApiModel):
    name: str | None = None
    icon: str | None = None
    color: str | None = None
    category_type: CategoryType | None = None


class CategoryResponse(ApiModel):
    id: int
    name: str
    icon: str | None
    color: str | None
    category_type: CategoryType
    is_default: bool


def _to_response(category: Category) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        icon=category.icon,
        color=category.color,
        category_type=category.category_type,
        is_default=category.is_default,
    )


# === Endpoints ===

@router.get("/default", response_model=list[CategoryResponse])
def list_default_categories(
    _current_user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Системные категории"""
    return [_to_response(c) for c in ListCategoriesService(db).defaults()]


@router.get("/user/{user_id}/all", response_model=list[CategoryResponse])
def list_visible_categories(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    """Системные + пользовательские"""
    return [_to_response(c) for c in ListCategoriesService(db).visible(user_id)]


@router.get("/user/{user_id}/custom", response_model=list[CategoryResponse])
def list_custom_categories(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    return [_to_response(c) for c in ListCategoriesService(db).custom(user_id)]


@router.post("/user/{user_id}/category", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    req: CategoryInput,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    category = CreateCategoryUseCase(db).execute(
        user_id=user_id,
        name=req.name,
        icon=req.icon,
        color=req.color,
        category_type=req.category_type,
    )
    return _to_response(category)


@router.put("/user/{user_id}/category/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    req: CategoryUpdateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    """Изменить пользовательскую категорию (системные -> 404)"""
    category = UpdateCategoryUseCase(db).execute(user_id, category_id, req.model_dump(exclude_unset=True))
    return _to_response(category)


@router.delete("/user/{user_id}/category/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    DeleteCategoryUseCase(db).execute(user_id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
