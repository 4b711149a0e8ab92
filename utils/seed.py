# utils/seed.py
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core import config
from core.security import hash_password
from models.enums import UserRole
from models.user import User

logger = logging.getLogger(__name__)


DEMO_USERS = [
    {
        "email": "rider@hushryd.com",
        "phone": "9123456780",
        "first_name": "Demo",
        "last_name": "Rider",
        "role": UserRole.user,
    },
    {
        "email": "driver@hushryd.com",
        "phone": "9123456781",
        "first_name": "Demo",
        "last_name": "Driver",
        "role": UserRole.driver,
    },
]
DEMO_PASSWORD = "password123"


def find_or_create(db: Session, model, defaults=None, **filters):
    """
    Look up by `filters`. If not found, create with {**filters, **defaults}.
    """
    instance = db.query(model).filter_by(**filters).first()
    if instance:
        return instance, False

    instance = model(**{**(defaults or {}), **filters})
    db.add(instance)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Try to fetch again in case a concurrent insert happened
        existing = db.query(model).filter_by(**filters).first()
        if existing:
            return existing, False
        raise
    db.refresh(instance)
    return instance, True


def seed_users(db: Session) -> int:
    created = 0
    for data in DEMO_USERS:
        defaults = {k: v for k, v in data.items() if k != "email"}
        defaults.update(hashed_password=hash_password(DEMO_PASSWORD), is_active=True)
        _, was_created = find_or_create(db, User, defaults=defaults, email=data["email"])
        created += int(was_created)
    logger.info("Seeded %d demo users", created)
    return created


def seed_admin(db: Session, email: str, password: str, first_name: str = "Admin", last_name: str = "User") -> User:
    """
    Provision an admin account. Admins cannot self-register, so this is the
    only way one comes to exist. An existing account with the same email is
    promoted and its password reset.
    """
    admin, created = find_or_create(
        db,
        User,
        defaults={
            "hashed_password": hash_password(password),
            "first_name": first_name,
            "last_name": last_name,
            "role": UserRole.admin,
            "is_verified": True,
            "is_active": True,
        },
        email=email,
    )
    if not created:
        admin.role = UserRole.admin
        admin.hashed_password = hash_password(password)
        admin.is_active = True
        db.commit()
        db.refresh(admin)
    logger.info("%s admin %s", "Created" if created else "Updated", admin.id)
    return admin


def main():
    from db import SessionLocal, engine
    from models import create_db_and_tables

    logging.basicConfig(level=logging.INFO)
    create_db_and_tables(engine)
    with SessionLocal() as db:
        seed_users(db)
        if config.ADMIN_PASSWORD:
            seed_admin(db, config.ADMIN_EMAIL, config.ADMIN_PASSWORD)
        else:
            logger.warning("ADMIN_PASSWORD not set; skipping admin provisioning")


if __name__ == "__main__":
    main()
