# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""News routes."""

from typing import List, Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rentaly.database import get_db
from rentaly.middleware.auth import require_permission
from rentaly.models.admin import Admin
from rentaly.models.content import NewsItem
from rentaly.services.audit import log_audit_event
from rentaly.services.content import apply_content_fields, search_filter
from rentaly.utils.helpers import page_meta

router = APIRouter(prefix="/api/news")
admin_router = APIRouter(prefix="/api/admin/news")

NewsCategory = Literal[
    "Car News",
    "Industry Updates",
    "Travel Tips",
    "Safety",
    "Technology",
    "Company News",
    "General",
]


class NewsImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1)
    alt: Optional[str] = None
    public_id: Optional[str] = Field(None, alias="publicId")


class NewsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    excerpt: Optional[str] = Field(None, max_length=300)
    content: Optional[str] = Field(None, min_length=1)
    image: Optional[NewsImage] = None
    author: Optional[str] = Field(None, max_length=100)
    category: Optional[NewsCategory] = None
    tags: Optional[Union[List[str], str]] = None
    status: Optional[Literal["draft", "published", "archived"]] = None
    featured: Optional[bool] = None
    meta_title: Optional[str] = Field(None, alias="metaTitle", max_length=60)
    meta_description: Optional[str] = Field(None, alias="metaDescription", max_length=160)


class NewsCreate(NewsUpdate):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)


def news_fields(data: NewsUpdate) -> dict:
    fields = data.model_dump(exclude_unset=True, exclude={"image"})
    fields = {key: value for key, value in fields.items() if value is not None}
    if data.image is not None:
        fields["image"] = data.image.model_dump(by_alias=True, exclude_none=True)
    return fields


def get_news_or_404(db: Session, news_id: int) -> NewsItem:
    item = db.query(NewsItem).filter(NewsItem.id == news_id).first()
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="News item not found",
        )
    return item


def published_news(db: Session):
    return db.query(NewsItem).filter(NewsItem.status == "published")


# Public routes
@router.get("")
async def list_news(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    """Published news without the article body."""
    query = published_news(db)
    if category:
        query = query.filter(NewsItem.category == category)
    if featured is not None:
        query = query.filter(NewsItem.featured == featured)

    total = query.count()
    items = (
        query.order_by(NewsItem.published_at.desc(), NewsItem.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "data": [item.to_dict(include_content=False) for item in items],
        "pagination": page_meta(page, limit, total),
    }


@router.get("/recent")
async def recent_news(
    limit: int = Query(3, ge=1, le=20),
    db: Session = Depends(get_db),
):
    items = (
        published_news(db)
        .order_by(NewsItem.published_at.desc(), NewsItem.id.desc())
        .limit(limit)
        .all()
    )
    return {"success": True, "data": [item.to_dict(include_content=False) for item in items]}


@router.get("/{id_or_slug}")
async def get_news(id_or_slug: str, db: Session = Depends(get_db)):
    query = published_news(db)
    if id_or_slug.isdigit():
        item = query.filter(NewsItem.id == int(id_or_slug)).first()
    else:
        item = query.filter(NewsItem.slug == id_or_slug).first()

    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="News item not found",
        )

    item.view_count = (item.view_count or 0) + 1
    db.commit()
    db.refresh(item)
    return {"success": True, "data": item.to_dict()}


# Admin routes
@admin_router.get("")
async def admin_list_news(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    news_status: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "read")),
):
    query = db.query(NewsItem)
    if news_status:
        query = query.filter(NewsItem.status == news_status)
    if category:
        query = query.filter(NewsItem.category == category)
    query = search_filter(query, NewsItem, search)

    total = query.count()
    items = (
        query.order_by(NewsItem.created_at.desc(), NewsItem.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "data": [item.to_dict(include_content=False) for item in items],
        "pagination": page_meta(page, limit, total),
    }


@admin_router.get("/{news_id}")
async def admin_get_news(
    news_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "read")),
):
    return {"success": True, "data": get_news_or_404(db, news_id).to_dict()}


@admin_router.post("", status_code=status.HTTP_201_CREATED)
async def admin_create_news(
    data: NewsCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "create")),
):
    fields = news_fields(data)
    fields.setdefault("author", current_admin.full_name)

    item = NewsItem(author_id=current_admin.id, status="published", category="General", tags=[], view_count=0)
    apply_content_fields(db, item, fields)
    db.add(item)
    db.commit()
    db.refresh(item)

    log_audit_event(db, current_admin, "create", "news", item.id, item.title, request=request)
    return {"success": True, "message": "News item created", "data": item.to_dict()}


@admin_router.put("/{news_id}")
async def admin_update_news(
    news_id: int,
    data: NewsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "update")),
):
    item = get_news_or_404(db, news_id)
    apply_content_fields(db, item, news_fields(data))
    db.commit()
    db.refresh(item)

    log_audit_event(db, current_admin, "update", "news", item.id, item.title, request=request)
    return {"success": True, "message": "News item updated", "data": item.to_dict()}


@admin_router.delete("/{news_id}")
async def admin_delete_news(
    news_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "delete")),
):
    item = get_news_or_404(db, news_id)
    title = item.title
    db.delete(item)
    db.commit()

    log_audit_event(db, current_admin, "delete", "news", news_id, title, request=request)
    return {"success": True, "message": "News item deleted", "data": {"id": news_id}}
