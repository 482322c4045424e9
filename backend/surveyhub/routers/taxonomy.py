"""Topic and tag routers."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from surveyhub.database import get_db
from surveyhub.schemas.template import TopicCreate, TopicResponse, TagResponse, TagCount
from surveyhub.schemas.user import Principal
from surveyhub.services.auth import require_admin
from surveyhub.services.tags import TagResolver
from surveyhub.services.topics import TopicService

topics_router = APIRouter()
tags_router = APIRouter()


@topics_router.get("", response_model=List[TopicResponse])
async def list_topics(db: Session = Depends(get_db)):
    return TopicService(db).list_topics()


@topics_router.post("", response_model=TopicResponse, status_code=status.HTTP_201_CREATED)
async def create_topic(
    topic_data: TopicCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin)
):
    """Create a topic (admin only)."""
    return TopicService(db).create_topic(principal, topic_data.name)


@tags_router.get("", response_model=List[TagResponse])
async def list_tags(db: Session = Depends(get_db)):
    return TagResolver(db).list_tags()


@tags_router.get("/cloud", response_model=List[TagCount])
async def tag_cloud(db: Session = Depends(get_db)):
    """Every tag with the number of templates using it."""
    return [TagCount(name=name, count=count) for name, count in TagResolver(db).tag_counts()]
