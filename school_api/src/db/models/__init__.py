"""
ORM models.

central: schools and super-admin accounts (CentralBase metadata, central database).
Everything else lives inside each school's own database (TenantBase metadata).

Importing this package registers every mapped class with its metadata for Alembic,
tenant schema creation, and runtime usage.
"""

from .central import (  # noqa: F401
    School,
    SuperAdminUser,
)
from .users import User  # noqa: F401
from .academics import (  # noqa: F401
    AcademicYear,
    Term,
    SchoolClass,
    Subject,
    Student,
    Teacher,
    TeacherAssignment,
    GradingScale,
    Timetable,
    TimetablePeriod,
    Attendance,
)
from .exams import (  # noqa: F401
    Exam,
    Assessment,
    Mark,
)
from .finance import (  # noqa: F401
    FeeItem,
    Invoice,
    InvoiceItem,
    FeePayment,
    Expense,
)
from .library import (  # noqa: F401
    Book,
    BookTransaction,
)
from .dormitory import (  # noqa: F401
    Dormitory,
    Room,
    RoomOccupant,
)
from .pharmacy import (  # noqa: F401
    Medication,
    Visit,
    Dispensation,
    HealthRecord,
)
from .notifications import Notification  # noqa: F401
from .website import (  # noqa: F401
    Article,
    GalleryItem,
    Event,
    WebsiteSettings,
)
from .audit import AuditLog  # noqa: F401
