from sqlalchemy.orm import Session
from storefront.data.models.user import UserModel
from storefront.domain.errors import ConflictError, NotFoundError
from storefront.repos.user_repo import UserRepo
from storefront.domain.schemas import UserCreate, UserRead


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        email = payload.email.strip().lower()
        if self.repo.get_by_email(email):
            raise ConflictError("Email already registered", {"email": email})

        user = UserModel(id=payload.id, name=payload.name, email=email, role=payload.role)
        created = self.repo.create_user(user)
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": user_id})
        return UserRead.model_validate(user)
