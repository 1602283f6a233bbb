"""API dependencies: access to the long-lived feed service."""
from typing import Annotated

from fastapi import Depends, Request

from propfeed.services.feed_service import FeedService


def get_feed_service(request: Request) -> FeedService:
    """The FeedService built in the application lifespan."""
    return request.app.state.feed_service


FeedServiceDep = Annotated[FeedService, Depends(get_feed_service)]
