import uuid
from sqlmodel import select, Session
from models.users import User
from core.security import get_password_hash, verify_password


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.scalars(select(User).where(User.email == email)).first()


def get_user_by_id(db: Session, user_id: uuid.UUID) -> User | None:
    """Get a user by ID."""
    return db.get(User, user_id)


def create_user_with_password(
    db: Session,
    email: str,
    password: str,
    name: str,
    role: str = "pending",
    is_approved: bool = False
) -> User:
    """Create a new user with email and password.

    Self-registered employees start as ``pending`` and unapproved until an
    administrator approves them.
    """
    existing_user = get_user_by_email(db, email)
    if existing_user:
        raise ValueError("User with this email already exists")

    user = User(
        id=uuid.uuid4(),
        email=email,
        name=name,
        role=role,
        is_approved=is_approved,
        hashed_password=get_password_hash(password)
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    return user


def authenticate_user(
    db: Session,
    email: str,
    password: str
) -> User | None:
    """Authenticate a user with email and password."""
    user = get_user_by_email(db, email)

    if not user:
        return None

    if not verify_password(password, user.hashed_password):
        return None

    return user
