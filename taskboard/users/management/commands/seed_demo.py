from __future__ import annotations

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.core.management.base import CommandParser
from django.db import transaction
from django.utils import timezone

from taskboard.tasks.models import Task
from taskboard.users.models import Team
from taskboard.users.models import User

DEMO_PASSWORD = "Password123"  # noqa: S105 - demo credentials only
ADMIN_PASSWORD = "Admin123"  # noqa: S105 - demo credentials only

DEMO_USERS = [
    {
        "name": "Admin User",
        "email": "admin@example.com",
        "role": User.Role.ADMIN,
        "department": "Management",
        "phone": "+1-555-0001",
    },
    {
        "name": "John Doe",
        "email": "john@example.com",
        "role": User.Role.USER,
        "department": "Frontend Development",
        "phone": "+1-555-0002",
    },
    {
        "name": "Jane Smith",
        "email": "jane@example.com",
        "role": User.Role.MANAGER,
        "department": "Backend Development",
        "phone": "+1-555-0003",
    },
    {
        "name": "Mike Brown",
        "email": "mike@example.com",
        "role": User.Role.USER,
        "department": "Quality Assurance",
        "phone": "+1-555-0004",
    },
]

# (title, description, status, priority, assignee, creator, due in days, tags, progress)
DEMO_TASKS = [
    (
        "Design System Implementation",
        "Create a comprehensive design system with reusable components, "
        "color schemes, and typography guidelines for the entire application.",
        Task.Status.IN_PROGRESS,
        Task.Priority.HIGH,
        "john@example.com",
        "admin@example.com",
        21,
        ["design", "frontend", "ui/ux"],
        65,
    ),
    (
        "API Documentation",
        "Write comprehensive API documentation including endpoints, "
        "request/response examples, and authentication guides.",
        Task.Status.COMPLETED,
        Task.Priority.MEDIUM,
        "jane@example.com",
        "admin@example.com",
        -3,
        ["documentation", "api", "backend"],
        100,
    ),
    (
        "User Authentication System",
        "Implement secure user authentication with JWT tokens, password "
        "hashing, and role-based access control.",
        Task.Status.COMPLETED,
        Task.Priority.HIGH,
        "mike@example.com",
        "admin@example.com",
        -10,
        ["authentication", "security", "backend"],
        100,
    ),
    (
        "Database Migration Scripts",
        "Create migration scripts for database schema updates and data "
        "transformations.",
        Task.Status.TODO,
        Task.Priority.LOW,
        "john@example.com",
        "jane@example.com",
        30,
        ["database", "migration", "backend"],
        0,
    ),
    (
        "Real-time Notifications",
        "Implement real-time notifications using Socket.IO for task updates, "
        "comments, and system alerts.",
        Task.Status.IN_PROGRESS,
        Task.Priority.MEDIUM,
        "jane@example.com",
        "john@example.com",
        14,
        ["real-time", "websockets", "notifications"],
        30,
    ),
    (
        "Mobile Responsive Design",
        "Ensure the application is fully responsive and works seamlessly on "
        "mobile devices and tablets.",
        Task.Status.IN_PROGRESS,
        Task.Priority.HIGH,
        "mike@example.com",
        "admin@example.com",
        7,
        ["mobile", "responsive", "css", "frontend"],
        80,
    ),
    (
        "Performance Optimization",
        "Optimize application performance by implementing caching, code "
        "splitting, and database query optimization.",
        Task.Status.TODO,
        Task.Priority.MEDIUM,
        "john@example.com",
        "mike@example.com",
        45,
        ["performance", "optimization", "caching"],
        15,
    ),
    (
        "Unit Testing Suite",
        "Write comprehensive unit tests for all API endpoints and core "
        "functionality.",
        Task.Status.IN_PROGRESS,
        Task.Priority.HIGH,
        "jane@example.com",
        "admin@example.com",
        10,
        ["testing", "quality"],
        40,
    ),
]


class Command(BaseCommand):
    help = "Replace all users and tasks with a small demo data set"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--no-input",
            action="store_true",
            dest="no_input",
            help="Do not ask for confirmation before deleting existing data",
        )

    def handle(self, *args, **options) -> None:
        if not options["no_input"]:
            answer = input("This deletes every user and task. Continue? [y/N] ")
            if answer.strip().lower() not in {"y", "yes"}:
                self.stdout.write("Aborted.")
                return

        with transaction.atomic():
            Task.objects.all().delete()
            User.objects.all().delete()
            Team.objects.all().delete()

            team = Team.objects.create(name="Product")
            users: dict[str, User] = {}
            for data in DEMO_USERS:
                password = (
                    ADMIN_PASSWORD if data["role"] == User.Role.ADMIN else DEMO_PASSWORD
                )
                user = User.objects.create_user(password=password, **data)
                if data["role"] != User.Role.ADMIN:
                    user.teams.add(team)
                users[user.email] = user
            self.stdout.write(self.style.SUCCESS(f"Created {len(users)} users"))

            now = timezone.now()
            for (
                title,
                description,
                status,
                priority,
                assignee,
                creator,
                due_in,
                tags,
                progress,
            ) in DEMO_TASKS:
                Task.objects.create(
                    title=title,
                    description=description,
                    status=status,
                    priority=priority,
                    assigned_to=users[assignee],
                    created_by=users[creator],
                    due_date=now + timedelta(days=due_in),
                    tags=tags,
                    progress=progress,
                )
            self.stdout.write(self.style.SUCCESS(f"Created {len(DEMO_TASKS)} tasks"))

        self.stdout.write(
            f"Log in as admin@example.com / {ADMIN_PASSWORD} "
            f"or any other demo user / {DEMO_PASSWORD}"
        )
