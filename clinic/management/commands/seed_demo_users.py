from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import Hospital, Role, User

DEMO_USERS = [
    ("superadmin", Role.SUPER_ADMIN, False),
    ("admin", Role.ADMIN, True),
    ("hospitaladmin", Role.HOSPITAL_ADMIN, True),
    ("doctor", Role.DOCTOR, True),
    ("therapist", Role.THERAPIST, True),
    ("support", Role.SUPPORT, True),
    ("patient", Role.PATIENT, False),
    ("guardian", Role.GUARDIAN, False),
]


class Command(BaseCommand):
    help = "Create a demo hospital and one user per role (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="Demo-Pass-2024", help="Password set on every demo user")
        parser.add_argument("--hospital", default="Demo Hospital", help="Name of the demo hospital")

    @transaction.atomic
    def handle(self, *args, **opts):
        hospital, _ = Hospital.objects.get_or_create(name=opts["hospital"])
        for username, role, affiliated in DEMO_USERS:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "email": f"{username}@demo.local", "full_name": role.label},
            )
            u.role = role
            u.is_active = True
            u.hospital = hospital if affiliated else None
            u.set_password(opts["password"])
            u.save()
            verb = "created" if created else "reset"
            self.stdout.write(self.style.SUCCESS(f"{verb}: {username} ({role.value})"))
        self.stdout.write(self.style.SUCCESS(f"Demo users ready in hospital #{hospital.pk}."))
