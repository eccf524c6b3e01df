from apps.accounts.models import Department, UserRole

# Demo console identities; every one logs in with settings.CONSOLE_SHARED_PASSWORD.
DEMO_IDENTITIES = (
    {"username": "superadmin", "email": "superadmin@fazztrack.com", "first_name": "Super", "last_name": "Admin",
     "department": Department.SUPERADMIN, "role": UserRole.SUPERADMIN},
    {"username": "admin", "email": "admin@fazztrack.com", "first_name": "Admin", "last_name": "User",
     "department": Department.ADMIN, "role": UserRole.ADMIN},
    {"username": "sales", "email": "sales@fazztrack.com", "first_name": "Sales", "last_name": "Manager",
     "department": Department.SALES_MANAGER, "role": UserRole.SALES_MANAGER},
    {"username": "designer", "email": "designer@fazztrack.com", "first_name": "Designer", "last_name": "",
     "department": Department.DESIGNER, "role": UserRole.DESIGNER},
    {"username": "print", "email": "print@fazztrack.com", "first_name": "Print", "last_name": "Staff",
     "department": Department.PRODUCTION_STAFF, "role": UserRole.PRINT},
    {"username": "press", "email": "press@fazztrack.com", "first_name": "Press", "last_name": "Staff",
     "department": Department.PRODUCTION_STAFF, "role": UserRole.PRESS},
    {"username": "cut", "email": "cut@fazztrack.com", "first_name": "Cut", "last_name": "Staff",
     "department": Department.PRODUCTION_STAFF, "role": UserRole.CUT},
    {"username": "sew", "email": "sew@fazztrack.com", "first_name": "Sew", "last_name": "Staff",
     "department": Department.PRODUCTION_STAFF, "role": UserRole.SEW},
    {"username": "qc", "email": "qc@fazztrack.com", "first_name": "QC", "last_name": "Staff",
     "department": Department.PRODUCTION_STAFF, "role": UserRole.QC},
    {"username": "iron", "email": "iron@fazztrack.com", "first_name": "Iron/Packing", "last_name": "Staff",
     "department": Department.PRODUCTION_STAFF, "role": UserRole.IRON_PACKING},
)
