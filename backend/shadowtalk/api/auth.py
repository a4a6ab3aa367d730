from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from shadowtalk.api.deps import get_current_user, limit_session_creation
from shadowtalk.database import get_db
from shadowtalk.models.user import User
from shadowtalk.schemas.token import JoinSession, Token
from shadowtalk.schemas.user import UserResponse
from shadowtalk.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


def _unique_anonymous_id(db: Session) -> str:
    while True:
        candidate = auth_service.generate_anonymous_id()
        if not db.query(User).filter(User.anonymous_id == candidate).first():
            return candidate


@router.post(
    "/create-session",
    response_model=Token,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_session_creation)],
)
async def create_session(db: Session = Depends(get_db)) -> Token:
    """Mint a new ShadowID and return a long-lived token for it."""
    user = User(
        anonymous_id=_unique_anonymous_id(db),
        session_id=auth_service.generate_session_id(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    return Token(
        token=auth_service.create_access_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/join-session", response_model=UserResponse)
async def join_session(body: JoinSession, db: Session = Depends(get_db)) -> UserResponse:
    """Resume an existing ShadowID from a stored token."""
    if auth_service.decode_access_token(body.token) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = auth_service.get_user_from_token(body.token, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found or expired")

    user.last_seen = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)
