from fastapi import APIRouter, Depends, HTTPException
import logging

from backend.config import Settings, get_settings
from backend.database.repositories import ProfileRepository, UserRepository
from backend.dependencies import get_profile_repo, get_user_repo
from backend.models.user_model import LoginIn, ProfileUpdate, UserData, UserProfile
from backend.utils.jwt_handler import check_password, create_access_token, hash_password, require_user

router = APIRouter()

# Logger setup
logger = logging.getLogger("user_routes")
logging.basicConfig(level=logging.INFO)


#----authentication db search by email, then check the password --#
def authenticate(users: UserRepository, email: str, password: str) -> dict:
    user = users.find_by_email(email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not check_password(password, user["password"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return user


# ================== AUTH ==================
@router.post("/signup")
def signup(
    user: UserData,
    users: UserRepository = Depends(get_user_repo),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    if users.find_by_email(user.email):
        raise HTTPException(status_code=400, detail="User already exists")

    data = user.model_dump()
    data["password"] = hash_password(user.password)
    user_id = users.insert(data)

    # every account starts with a profile carrying its display name
    profiles.upsert(user_id, full_name=user.name)
    logger.info(f"User {user.email} signed up")
    return {"message": "User created successfully", "inserted_id": user_id}


@router.post("/login")
def login(
    body: LoginIn,
    users: UserRepository = Depends(get_user_repo),
    settings: Settings = Depends(get_settings),
):
    user = authenticate(users, body.email, body.password)
    username = user.get("name") or user["email"]
    token = create_access_token(
        {"sub": str(user["_id"]), "username": username, "email": user["email"]},
        settings,
    )
    logger.info(f"User {user['email']} logged in")
    return {
        "access_token": token,
        "token_type": "bearer",
        "user_id": str(user["_id"]),
        "username": username,
    }


#-- get user info from jwt after decode --#
@router.get("/me", tags=["Users"])
def me(user=Depends(require_user)):
    return {"username": user["username"], "user_id": user["user_id"], "email": user["email"]}


# ================== PROFILE ==================
@router.get("/profile", tags=["Users"])
def get_profile(user=Depends(require_user), profiles: ProfileRepository = Depends(get_profile_repo)):
    profile = profiles.get(user["user_id"])
    if not profile:
        return UserProfile(id=user["user_id"])
    return UserProfile(**profile)


@router.put("/profile", tags=["Users"])
def update_profile(
    body: ProfileUpdate,
    user=Depends(require_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    updates = body.model_dump(exclude_none=True)
    profile = profiles.upsert(user["user_id"], **updates)
    logger.info(f"Profile updated for user {user['user_id']}")
    return UserProfile(**profile)
