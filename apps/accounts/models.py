from django.contrib.auth.models import AbstractUser
from django.db import models


class Department(models.TextChoices):
    SUPERADMIN = "superadmin", "Super Admin"
    ADMIN = "admin", "Admin"
    SALES_MANAGER = "sales_manager", "Sales Manager"
    DESIGNER = "designer", "Designer"
    PRODUCTION_STAFF = "production_staff", "Production Staff"


class UserRole(models.TextChoices):
    SUPERADMIN = "superadmin", "Super Admin"
    ADMIN = "admin", "Admin"
    SALES_MANAGER = "sales_manager", "Sales Manager"
    DESIGNER = "designer", "Designer"
    PRINT = "print", "Print"
    PRESS = "press", "Press"
    CUT = "cut", "Cut"
    SEW = "sew", "Sew"
    QC = "qc", "Quality Check"
    IRON_PACKING = "iron_packing", "Iron/Packing"


PRODUCTION_ROLES = (
    UserRole.PRINT,
    UserRole.PRESS,
    UserRole.CUT,
    UserRole.SEW,
    UserRole.QC,
    UserRole.IRON_PACKING,
)


class User(AbstractUser):
    department = models.CharField(max_length=20, choices=Department.choices, default=Department.PRODUCTION_STAFF)
    role = models.CharField(max_length=20, choices=UserRole.choices, default=UserRole.PRINT)
    phone = models.CharField(max_length=50, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def display_name(self):
        return self.get_full_name() or self.username
