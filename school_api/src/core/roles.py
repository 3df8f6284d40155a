"""Role names carried in access tokens and stored on tenant users."""

SUPERADMIN = "superadmin"
ADMIN = "admin"
TEACHER = "teacher"
STUDENT = "student"
LIBRARIAN = "librarian"
FINANCE = "finance"
PHARMACY = "pharmacy"
DORMITORY_MASTER = "dormitory_master"

TENANT_ROLES = (ADMIN, TEACHER, STUDENT, LIBRARIAN, FINANCE, PHARMACY, DORMITORY_MASTER)
