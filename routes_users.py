from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from auth import CurrentUser, admin_only, create_access_token, get_current_user, get_password_hash, verify_password
from config import get_settings
from database import get_by_id, get_collection, insert_with_id, list_many, now_utc, serialize
from logger import get_logger
from schemas import LoginBody, ProfileUpdate, RegisterBody

log = get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _auth_response(user: dict) -> dict:
    return {
        "id": user["id"],
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
        "location": user.get("location"),
        "token": create_access_token(user["id"], user.get("role")),
    }


@router.post("/register", status_code=201)
def register(body: RegisterBody):
    if body.role == "admin" and not get_settings().ALLOW_ADMIN_SIGNUP:
        raise HTTPException(status_code=400, detail="Admin accounts cannot be self-registered")
    users = get_collection("user")
    if users.find_one({"email": body.email}):
        raise HTTPException(status_code=400, detail="User already exists")
    user_doc = {
        "name": body.name,
        "email": body.email,
        "passwordHash": get_password_hash(body.password),
        "role": body.role,
        "location": body.location.model_dump(exclude_none=True),
        "phoneNumber": body.phoneNumber,
    }
    try:
        user = insert_with_id("user", user_doc)
    except DuplicateKeyError:
        # lost a race with a concurrent registration for the same email
        raise HTTPException(status_code=400, detail="User already exists")
    log.info("Registered %s user %s", user["role"], user["id"])
    return _auth_response(user)


@router.post("/login")
def login(body: LoginBody):
    user = get_collection("user").find_one({"email": body.email})
    if not user or not verify_password(body.password, user.get("passwordHash", "")):
        log.info("Failed login for %s", body.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _auth_response(user)


@router.get("/profile")
def get_profile(user: CurrentUser = Depends(get_current_user)):
    doc = get_by_id("user", user.id)
    if not doc:
        raise HTTPException(status_code=404, detail="User not found")
    return serialize(doc)


@router.put("/profile")
def update_profile(body: ProfileUpdate, user: CurrentUser = Depends(get_current_user)):
    users = get_collection("user")
    doc = get_by_id("user", user.id)
    if not doc:
        raise HTTPException(status_code=404, detail="User not found")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    password = changes.pop("password", None)
    if password:
        changes["passwordHash"] = get_password_hash(password)
    if changes.get("email") and changes["email"] != doc.get("email"):
        if users.find_one({"email": changes["email"], "id": {"$ne": doc["id"]}}):
            raise HTTPException(status_code=400, detail="Email already in use")
    changes["updatedAt"] = now_utc()

    try:
        users.update_one({"id": doc["id"]}, {"$set": changes})
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already in use")
    updated = users.find_one({"id": doc["id"]})
    return {**serialize(updated), "token": create_access_token(updated["id"], updated["role"])}


@router.get("")
def list_users(user: CurrentUser = Depends(admin_only)):
    return [serialize(u) for u in list_many("user", sort=[("createdAt", -1), ("_id", -1)])]
