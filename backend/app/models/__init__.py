from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.company import Company  # noqa: F401
from app.models.scene import Scene, SceneStatus  # noqa: F401
from app.models.show import Show, ShowStatus  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
