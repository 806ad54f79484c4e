from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from storefront.data.database import get_db
from storefront.services.user_service import UserService
from storefront.domain.schemas import UserCreate, UserRead

router = APIRouter(prefix="/users", tags=["users"])

@router.post("", response_model=UserRead)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(payload)

@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).get_user(user_id)
