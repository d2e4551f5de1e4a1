from fastapi import APIRouter, HTTPException, Depends
from app.schemas.user import UserCreate, UserResponse
from app.core.auth import get_current_user_id
from app.db.mongo import get_db
from app.repositories.user_repo import UserRepository

router = APIRouter()

@router.post("/me", response_model=UserResponse)
async def register_my_profile(
    user_in: UserCreate,
    current_user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Create or rename the profile of the authenticated identity"""
    user = await UserRepository(db).upsert_user(current_user_id, user_in.name)
    return UserResponse.model_validate(user.to_document())

@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    current_user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Get current user profile"""
    user = await UserRepository(db).get_user(current_user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Profile not registered")
    return UserResponse.model_validate(user.to_document())

@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db = Depends(get_db)
):
    """Get a participant's display profile"""
    user = await UserRepository(db).get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(user.to_document())
