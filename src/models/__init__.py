# Import models here so Alembic can discover them via metadata
from .base import Base  # noqa: F401
from .value import Value  # noqa: F401
