# Import all the models, so that Base has them before being
# imported by Alembic or used for create_all
from app.db.base_class import Base  # noqa
from app.models.engineer import Engineer, UserRole  # noqa
from app.models.customer import Customer  # noqa
from app.models.route import Route  # noqa
from app.models.job import Job  # noqa
from app.models.time_tracking import TimeTracking  # noqa
