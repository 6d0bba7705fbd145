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

"""Blog post and news models."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from rentaly.database import Base, JSONType

BLOG_CATEGORIES = (
    "Car Reviews",
    "Travel Tips",
    "Maintenance",
    "Insurance",
    "Road Safety",
    "Car Tech",
    "Company News",
    "Industry News",
)

NEWS_CATEGORIES = (
    "Car News",
    "Industry Updates",
    "Travel Tips",
    "Safety",
    "Technology",
    "Company News",
    "General",
)

CONTENT_STATUSES = ("draft", "published", "archived")

DEFAULT_BLOG_IMAGE = "/images/blog/default.jpg"


class BlogPost(Base):
    """Blog article."""

    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    excerpt = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    featured_image = Column(JSONType, nullable=False)
    author = Column(String(100), nullable=True)
    author_id = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    category = Column(String(50), nullable=False, default="Company News", index=True)
    tags = Column(JSONType, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="draft", index=True)
    featured = Column(Boolean, nullable=False, default=False)
    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    reading_time = Column(Integer, nullable=False, default=1)
    meta_title = Column(String(60), nullable=True)
    meta_description = Column(String(160), nullable=True)
    published_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published', 'archived')", name="ck_blog_status"),
    )

    author_admin = relationship("Admin")

    def to_dict(self, include_content: bool = True) -> dict:
        result = {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "featuredImage": self.featured_image,
            "author": self.author,
            "category": self.category,
            "tags": self.tags or [],
            "status": self.status,
            "featured": self.featured,
            "views": self.views,
            "likes": self.likes,
            "readingTime": self.reading_time,
            "seo": {"metaTitle": self.meta_title, "metaDescription": self.meta_description},
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_content:
            result["content"] = self.content
        return result

    def __repr__(self):
        return f"<BlogPost(id={self.id}, slug='{self.slug}', status='{self.status}')>"


class NewsItem(Base):
    """Short news item."""

    __tablename__ = "news"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    excerpt = Column(String(300), nullable=True)
    content = Column(Text, nullable=False)
    image = Column(JSONType, nullable=True)
    author = Column(String(100), nullable=True)
    author_id = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    category = Column(String(50), nullable=False, default="General", index=True)
    tags = Column(JSONType, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="published", index=True)
    featured = Column(Boolean, nullable=False, default=False)
    view_count = Column(Integer, nullable=False, default=0)
    reading_time = Column(Integer, nullable=False, default=1)
    meta_title = Column(String(60), nullable=True)
    meta_description = Column(String(160), nullable=True)
    published_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published', 'archived')", name="ck_news_status"),
    )

    def to_dict(self, include_content: bool = True) -> dict:
        result = {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "image": self.image,
            "author": self.author,
            "category": self.category,
            "tags": self.tags or [],
            "status": self.status,
            "featured": self.featured,
            "viewCount": self.view_count,
            "readingTime": self.reading_time,
            "seo": {"metaTitle": self.meta_title, "metaDescription": self.meta_description},
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_content:
            result["content"] = self.content
        return result

    def __repr__(self):
        return f"<NewsItem(id={self.id}, slug='{self.slug}', status='{self.status}')>"
