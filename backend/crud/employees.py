from sqlmodel import select, Session
from models.users import User


def get_all_employees(db: Session) -> list[User]:
    """All accounts except administrators, newest first."""
    return list(db.exec(
        select(User).where(User.role != "admin").order_by(User.created_at.desc())
    ).all())


def approve_employee(db: Session, user: User) -> User:
    """Give final approval to an account."""
    user.is_approved = True
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_employee_role(db: Session, user: User, role: str) -> User:
    """Change the role of an account. Moving to ``pending`` revokes approval."""
    user.role = role
    user.is_approved = role != "pending"
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def delete_employee(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()
