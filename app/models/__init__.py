# import every model so Base.metadata knows all tables
from app.models.user import User, watch_history
from app.models.video import Video
from app.models.subscription import Subscription

__all__ = ["User", "Video", "Subscription", "watch_history"]
