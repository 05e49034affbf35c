# Import every model so relationships resolve and Base.metadata is complete
from app.db.session import Base  # noqa: F401
from app.models.booking import Booking, SelectedService  # noqa: F401
from app.models.cancellation import Cancellation  # noqa: F401
from app.models.payment import Payment  # noqa: F401
from app.models.project import WeddingProject  # noqa: F401
from app.models.service_listing import ServiceListing  # noqa: F401
from app.models.time_slot import TimeSlot  # noqa: F401
