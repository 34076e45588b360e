from fastapi import APIRouter, Depends, Form, HTTPException

from campusvote.activity import record_activity
from campusvote.dependencies import Services, get_current_user, get_services
from campusvote.errors import DirectoryError
from campusvote.models.activity_model import ACTION_VOTER_REGISTERED
from campusvote.models.voter_model import ROLE_ADMIN, Voter, VoterRegistration
from campusvote.schemas import TokenOut
from campusvote.security import authenticate, hash_password, token_for

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=Voter, status_code=201)
async def register(data: VoterRegistration, services: Services = Depends(get_services)):
    try:
        voter = await services.directory.register(data, hash_password(data.password))
    except DirectoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await record_activity(
        services.activity, ACTION_VOTER_REGISTERED, voter.id, f"Registered in {voter.department}"
    )
    return voter


@router.post("/login", response_model=TokenOut)
async def login(
    student_id: str = Form(...),
    password: str = Form(...),
    services: Services = Depends(get_services),
):
    voter = await authenticate(services.directory, student_id, password)
    if voter is None or voter.role == ROLE_ADMIN:
        raise HTTPException(status_code=401, detail="Invalid student ID or password.")
    return TokenOut(access_token=token_for(voter))


@router.post("/admin/login", response_model=TokenOut)
async def admin_login(
    username: str = Form(...),
    password: str = Form(...),
    services: Services = Depends(get_services),
):
    admin = await authenticate(services.directory, username, password)
    if admin is None or admin.role != ROLE_ADMIN:
        raise HTTPException(status_code=401, detail="Invalid admin credentials.")
    return TokenOut(access_token=token_for(admin))


@router.get("/me", response_model=Voter)
async def me(user: Voter = Depends(get_current_user)):
    return user
