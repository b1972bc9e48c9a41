# app/models.py
# Registry of every ORM module, so Base.metadata knows all tables
# (create_all, alembic autogenerate, init_db.py).
from __future__ import annotations


def load_models() -> None:
    from app.modules.hospitals import models as hospitals_models  # noqa: F401
    from app.modules.patients import models as patients_models  # noqa: F401
    from app.modules.doctors import models as doctors_models  # noqa: F401
    from app.modules.appointments import models as appointments_models  # noqa: F401
