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

"""Shared helpers for blog posts and news items."""

from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Query, Session

from rentaly.models.content import BlogPost, NewsItem
from rentaly.utils.helpers import content_slug, normalize_tags, reading_time, sanitize_input

ContentModel = Type[Union[BlogPost, NewsItem]]


def unique_content_slug(db: Session, model: ContentModel, title: str, exclude_id: Optional[int] = None) -> str:
    """Slug from the title; ``-2``, ``-3``... is appended while it is taken."""
    base = content_slug(title)
    candidate, counter = base, 1
    while True:
        query = db.query(model.id).filter(model.slug == candidate)
        if exclude_id:
            query = query.filter(model.id != exclude_id)
        if query.first() is None:
            return candidate
        counter += 1
        candidate = f"{base}-{counter}"


def apply_content_fields(db: Session, item: Union[BlogPost, NewsItem], data: Dict[str, Any]) -> None:
    """Copy validated fields onto a post and keep derived fields in sync."""
    model = type(item)
    title_changed = "title" in data and data["title"] != item.title

    for key, value in data.items():
        if key == "tags":
            value = normalize_tags(value)
        elif key in ("title", "excerpt", "author") and value is not None:
            value = sanitize_input(value)
        setattr(item, key, value)

    if item.slug is None or title_changed:
        item.slug = unique_content_slug(db, model, item.title, exclude_id=item.id)

    if "content" in data or item.reading_time is None:
        item.reading_time = reading_time(item.content)

    if not item.meta_title:
        item.meta_title = (item.title or "")[:60]
    if not item.meta_description and item.excerpt:
        item.meta_description = item.excerpt[:160]

    if item.status == "published" and item.published_at is None:
        item.published_at = datetime.utcnow()


def search_filter(query: Query, model: ContentModel, term: Optional[str]) -> Query:
    if not term:
        return query
    like = f"%{term.strip()}%"
    return query.filter(
        or_(model.title.ilike(like), model.excerpt.ilike(like), model.content.ilike(like))
    )


def tag_filter(query: Query, model: ContentModel, tag: Optional[str]) -> Query:
    if not tag:
        return query
    # Tags are stored as a JSON array of strings
    return query.filter(cast(model.tags, String).like(f"%\"{tag.strip().lower()}\"%"))


def popular_tags(tag_lists: Iterable[Optional[list]], limit: int = 20) -> List[dict]:
    counts = Counter(tag for tags in tag_lists for tag in (tags or []))
    return [{"tag": tag, "count": count} for tag, count in counts.most_common(limit)]
