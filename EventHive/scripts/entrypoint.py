#!/usr/bin/env python
"""
Container entrypoint. PROCESS_ROLE picks what this container runs:
web (default), worker or beat.
"""
import os
import sys
import subprocess


def run(cmd: list[str]) -> int:
    return subprocess.call(cmd, env=os.environ.copy())


def ensure_superuser() -> None:
    username = os.getenv("DJANGO_SUPERUSER_USERNAME")
    email = os.getenv("DJANGO_SUPERUSER_EMAIL")
    password = os.getenv("DJANGO_SUPERUSER_PASSWORD")
    if not (username and email and password):
        return

    # createsuperuser exits non-zero when the user exists
    rc = run([sys.executable, "manage.py", "createsuperuser", "--noinput"])
    if rc != 0:
        print(f"ℹ️ Superuser {username} not created (already exists?)")


def web() -> int:
    rc = run([sys.executable, "manage.py", "migrate", "--noinput"])
    if rc != 0:
        return rc

    ensure_superuser()

    port = os.getenv("PORT", "8000")
    workers = os.getenv("WEB_CONCURRENCY", "3")
    return run([
        "gunicorn", "EventHive.wsgi:application",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
    ])


def worker() -> int:
    concurrency = os.getenv("CELERY_CONCURRENCY", "4")
    return run(["celery", "-A", "EventHive", "worker", "--loglevel=info", f"--concurrency={concurrency}"])


def beat() -> int:
    return run(["celery", "-A", "EventHive", "beat", "--loglevel=info"])


def main() -> int:
    role = os.getenv("PROCESS_ROLE", "web")
    roles = {"web": web, "worker": worker, "beat": beat}
    if role not in roles:
        print(f"❌ Unknown PROCESS_ROLE {role!r}; expected one of {', '.join(roles)}")
        return 2
    return roles[role]()


if __name__ == "__main__":
    sys.exit(main())
