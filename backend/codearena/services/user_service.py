from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from codearena.models.user import User


def get_user_by_handle(db: Session, handle: str) -> User | None:
    return db.query(User).filter(User.handle == handle).first()


def upsert_verified_user(db: Session, handle: str) -> User:
    """
    Mark a handle as verified, creating its user row on first verification.

    Verifying an already-verified handle leaves the row as it is.
    """
    user = get_user_by_handle(db, handle)

    if user is None:
        user = User(handle=handle, verified=True)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Another request inserted the same handle first
            db.rollback()
            user = get_user_by_handle(db, handle)
            if user is None:
                raise
            user.verified = True
            db.commit()
    elif not user.verified:
        user.verified = True
        db.commit()

    db.refresh(user)
    return user
