from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from core.models import User

DEMO_USERS = [
    ("superadmin", "super_admin", "Super", "Admin"),
    ("admin1", "admin", "Ada", "Admin"),
    ("admin2", "admin", "Alan", "Admin"),
    ("student1", "student", "Sam", "Student"),
    ("student2", "student", "Sade", "Student"),
]


class Command(BaseCommand):
    help = "Ensure demo users exist with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="demo-pass-123")

    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        for username, role, first, last in DEMO_USERS:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "role": role, "password": password, "is_active": True,
                    "first_name": first, "last_name": last, "email": f"{username}@example.com",
                    "is_staff": role == "super_admin", "is_superuser": role == "super_admin",
                },
            )
            if not created:
                # reset password, role and active flag
                user.password = password
                user.role = role
                user.is_active = True
                user.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
