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

"""Blog routes."""

from typing import List, Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from rentaly.database import get_db
from rentaly.middleware.auth import require_permission
from rentaly.models.admin import Admin
from rentaly.models.content import BLOG_CATEGORIES, DEFAULT_BLOG_IMAGE, BlogPost
from rentaly.services.audit import log_audit_event
from rentaly.services.content import apply_content_fields, popular_tags, search_filter, tag_filter
from rentaly.utils.helpers import page_meta

router = APIRouter(prefix="/api/blog")
admin_router = APIRouter(prefix="/api/admin/blog")

BlogCategory = Literal[
    "Car Reviews",
    "Travel Tips",
    "Maintenance",
    "Insurance",
    "Road Safety",
    "Car Tech",
    "Company News",
    "Industry News",
]
ContentStatus = Literal["draft", "published", "archived"]


class FeaturedImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(DEFAULT_BLOG_IMAGE, min_length=1)
    alt: Optional[str] = None
    public_id: Optional[str] = Field(None, alias="publicId")


class BlogPostUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    excerpt: Optional[str] = Field(None, min_length=1, max_length=300)
    content: Optional[str] = Field(None, min_length=1)
    featured_image: Optional[FeaturedImage] = Field(None, alias="featuredImage")
    author: Optional[str] = Field(None, max_length=100)
    category: Optional[BlogCategory] = None
    tags: Optional[Union[List[str], str]] = None
    status: Optional[ContentStatus] = None
    featured: Optional[bool] = None
    meta_title: Optional[str] = Field(None, alias="metaTitle", max_length=60)
    meta_description: Optional[str] = Field(None, alias="metaDescription", max_length=160)


class BlogPostCreate(BlogPostUpdate):
    title: str = Field(..., min_length=1, max_length=200)
    excerpt: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)


class StatusUpdate(BaseModel):
    status: ContentStatus


def post_fields(data: BlogPostUpdate) -> dict:
    fields = data.model_dump(exclude_unset=True, exclude={"featured_image"})
    fields = {key: value for key, value in fields.items() if value is not None}
    if data.featured_image is not None:
        fields["featured_image"] = data.featured_image.model_dump(by_alias=True, exclude_none=True)
    return fields


def get_post_or_404(db: Session, post_id: int) -> BlogPost:
    post = db.query(BlogPost).filter(BlogPost.id == post_id).first()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Blog post not found",
        )
    return post


def published_posts(db: Session):
    return db.query(BlogPost).filter(BlogPost.status == "published")


# Public routes
@router.get("")
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    """Published posts, newest first."""
    query = published_posts(db)
    if category:
        query = query.filter(BlogPost.category == category)
    if featured is not None:
        query = query.filter(BlogPost.featured == featured)
    query = tag_filter(query, BlogPost, tag)
    query = search_filter(query, BlogPost, search)

    total = query.count()
    posts = (
        query.order_by(BlogPost.published_at.desc(), BlogPost.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "success": True,
        "data": [p.to_dict(include_content=False) for p in posts],
        "pagination": page_meta(page, limit, total),
    }


@router.get("/featured")
async def featured_posts(
    limit: int = Query(6, ge=1, le=50),
    db: Session = Depends(get_db),
):
    posts = (
        published_posts(db)
        .filter(BlogPost.featured == True)  # noqa: E712
        .order_by(BlogPost.published_at.desc(), BlogPost.id.desc())
        .limit(limit)
        .all()
    )
    return {"success": True, "data": [p.to_dict(include_content=False) for p in posts]}


@router.get("/categories")
async def post_categories(db: Session = Depends(get_db)):
    """Every category with its number of published posts."""
    counts = dict(
        published_posts(db)
        .with_entities(BlogPost.category, func.count(BlogPost.id))
        .group_by(BlogPost.category)
        .all()
    )
    return {
        "success": True,
        "data": [{"name": name, "count": counts.get(name, 0)} for name in BLOG_CATEGORIES],
    }


@router.get("/tags")
async def post_tags(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    rows = published_posts(db).with_entities(BlogPost.tags).all()
    return {"success": True, "data": popular_tags((tags for (tags,) in rows), limit)}


@router.get("/search")
async def search_posts(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
):
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required",
        )

    query = search_filter(published_posts(db), BlogPost, q)
    total = query.count()
    posts = (
        query.order_by(BlogPost.published_at.desc(), BlogPost.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "query": q.strip(),
        "data": [p.to_dict(include_content=False) for p in posts],
        "pagination": page_meta(page, limit, total),
    }


@router.get("/{slug}")
async def get_post(slug: str, db: Session = Depends(get_db)):
    """A published post with up to three related posts from its category."""
    post = published_posts(db).filter(BlogPost.slug == slug).first()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Blog post not found",
        )

    post.views = (post.views or 0) + 1
    db.commit()
    db.refresh(post)

    related = (
        published_posts(db)
        .filter(BlogPost.category == post.category, BlogPost.id != post.id)
        .order_by(BlogPost.published_at.desc(), BlogPost.id.desc())
        .limit(3)
        .all()
    )

    return {
        "success": True,
        "data": post.to_dict(),
        "relatedPosts": [p.to_dict(include_content=False) for p in related],
    }


# Admin routes
@admin_router.get("")
async def admin_list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    post_status: Optional[ContentStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "read")),
):
    query = db.query(BlogPost)
    if post_status:
        query = query.filter(BlogPost.status == post_status)
    if category:
        query = query.filter(BlogPost.category == category)
    query = search_filter(query, BlogPost, search)

    total = query.count()
    posts = (
        query.order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "data": [p.to_dict(include_content=False) for p in posts],
        "pagination": page_meta(page, limit, total),
    }


@admin_router.get("/{post_id}")
async def admin_get_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "read")),
):
    return {"success": True, "data": get_post_or_404(db, post_id).to_dict()}


@admin_router.post("", status_code=status.HTTP_201_CREATED)
async def admin_create_post(
    data: BlogPostCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "create")),
):
    fields = post_fields(data)
    fields.setdefault("featured_image", {"url": DEFAULT_BLOG_IMAGE, "alt": data.title})
    fields.setdefault("author", current_admin.full_name)

    post = BlogPost(author_id=current_admin.id, status="draft", tags=[], views=0, likes=0)
    apply_content_fields(db, post, fields)
    db.add(post)
    db.commit()
    db.refresh(post)

    log_audit_event(db, current_admin, "create", "blog_post", post.id, post.title, request=request)
    return {"success": True, "message": "Blog post created", "data": post.to_dict()}


@admin_router.put("/{post_id}")
async def admin_update_post(
    post_id: int,
    data: BlogPostUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "update")),
):
    post = get_post_or_404(db, post_id)
    apply_content_fields(db, post, post_fields(data))
    db.commit()
    db.refresh(post)

    log_audit_event(db, current_admin, "update", "blog_post", post.id, post.title, request=request)
    return {"success": True, "message": "Blog post updated", "data": post.to_dict()}


@admin_router.delete("/{post_id}")
async def admin_delete_post(
    post_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "delete")),
):
    post = get_post_or_404(db, post_id)
    title = post.title
    db.delete(post)
    db.commit()

    log_audit_event(db, current_admin, "delete", "blog_post", post_id, title, request=request)
    return {"success": True, "message": "Blog post deleted", "data": {"id": post_id}}


@admin_router.patch("/{post_id}/featured")
async def admin_toggle_featured(
    post_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "update")),
):
    post = get_post_or_404(db, post_id)
    post.featured = not post.featured
    db.commit()
    db.refresh(post)
    return {
        "success": True,
        "message": f"Post {'featured' if post.featured else 'unfeatured'}",
        "data": post.to_dict(include_content=False),
    }


@admin_router.patch("/{post_id}/status")
async def admin_update_post_status(
    post_id: int,
    data: StatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("content", "update")),
):
    post = get_post_or_404(db, post_id)
    previous = post.status
    apply_content_fields(db, post, {"status": data.status})
    db.commit()
    db.refresh(post)

    log_audit_event(db, current_admin, "status_change", "blog_post", post.id, post.title,
                    details={"from": previous, "to": post.status}, request=request)
    return {
        "success": True,
        "message": f"Post status updated to {post.status}",
        "data": post.to_dict(include_content=False),
    }
