"""Business Dashboard API - Main Server"""
from fastapi import FastAPI, APIRouter, HTTPException, Depends, Header, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime, timezone

from auth_service import AuthResult, TokenData, sign_in, sign_out, sign_up, verify_token
from chat_service import WELCOME_MESSAGE
from data_service import fetch_dashboard_metrics, fetch_subscription_details, fetch_users
from ibge_service import BRAZIL_STATES, fetch_cities, state_label
from leads import LeadSearchError, search_businesses
from llm_service import analyze_business_metrics
from models import (
    AIAnalysisResponse, ChatMessage, CityOption, DashboardMetrics,
    DashboardSettings, Subscription, UserProfile,
)
from session_state import DashboardSession, SessionStore
from supabase_client import get_supabase, is_supabase_configured

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Business Dashboard API")
api_router = APIRouter(prefix="/api")

sessions = SessionStore()

NO_RESULTS_MESSAGE = "No results found for these criteria."


# ============ Pydantic Models ============

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: str

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class LeadSearchRequest(BaseModel):
    state: str = Field(min_length=2, max_length=2, description="UF code, e.g. SP")
    city: Optional[str] = None
    niche: str = Field(min_length=1)

class ChatRequest(BaseModel):
    message: str

class SettingsUpdate(BaseModel):
    company_name: Optional[str] = None
    mfa_enabled: Optional[bool] = None
    email_notifications: Optional[bool] = None


# ============ Dependencies ============

def get_db():
    """Shared Supabase client, or None when the database is not configured."""
    return get_supabase()


async def get_current_user(authorization: Optional[str] = Header(None)) -> TokenData:
    """Verify the Supabase access token and return current user data"""
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise HTTPException(status_code=401, detail="Invalid authentication scheme")
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    if not is_supabase_configured():
        raise HTTPException(status_code=503, detail="Authentication service not configured")

    token_data = verify_token(token)
    if not token_data:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return token_data


def get_session(current_user: TokenData = Depends(get_current_user)) -> DashboardSession:
    return sessions.get(current_user.user_id)


@app.exception_handler(LeadSearchError)
async def lead_search_error_handler(request: Request, exc: LeadSearchError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


# ============ Auth Endpoints ============

@api_router.post("/auth/register", response_model=AuthResult)
async def register(request: RegisterRequest):
    """Register through Supabase Auth"""
    if not is_supabase_configured():
        raise HTTPException(status_code=503, detail="Authentication service not configured")
    try:
        return sign_up(request.email, request.password, request.name)
    except Exception as e:
        logger.warning(f"Sign-up failed: {str(e)}")
        raise HTTPException(status_code=400, detail="Registration failed")


@api_router.post("/auth/login", response_model=AuthResult)
async def login(request: LoginRequest):
    """Login and get a Supabase access token"""
    if not is_supabase_configured():
        raise HTTPException(status_code=503, detail="Authentication service not configured")
    result = sign_in(request.email, request.password)
    if not result:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return result


@api_router.post("/auth/logout")
async def logout(current_user: TokenData = Depends(get_current_user)):
    """Sign out and drop the dashboard session"""
    sign_out(current_user.access_token)
    sessions.reset(current_user.user_id)
    return {"success": True}


@api_router.get("/auth/me")
async def get_me(current_user: TokenData = Depends(get_current_user)):
    return {
        "id": current_user.user_id,
        "email": current_user.email,
        "tenant_id": current_user.tenant_id,
    }


# ============ Dashboard Endpoints ============

@api_router.get("/dashboard/metrics", response_model=DashboardMetrics)
async def get_dashboard_metrics(
    current_user: TokenData = Depends(get_current_user),
    session: DashboardSession = Depends(get_session),
    db=Depends(get_db),
):
    """Metrics snapshot; never fails, degrades to the zeroed placeholder"""
    metrics = await fetch_dashboard_metrics(db, current_user.tenant_id)
    session.metrics = metrics
    session.ensure_chat()
    return metrics


@api_router.get("/dashboard/insights", response_model=AIAnalysisResponse)
async def get_dashboard_insights(
    current_user: TokenData = Depends(get_current_user),
    session: DashboardSession = Depends(get_session),
    db=Depends(get_db),
):
    """AI analysis of the current metrics; always answers"""
    if session.metrics is None:
        session.metrics = await fetch_dashboard_metrics(db, current_user.tenant_id)
    return await analyze_business_metrics(session.metrics)


# ============ Billing & Users ============

@api_router.get("/billing/subscription", response_model=Subscription)
async def get_subscription(
    current_user: TokenData = Depends(get_current_user),
    db=Depends(get_db),
):
    subscription = await fetch_subscription_details(db, current_user.tenant_id)
    if subscription is None:
        raise HTTPException(status_code=502, detail="Unable to load billing information")
    return subscription


@api_router.get("/users", response_model=List[UserProfile])
async def get_users(
    current_user: TokenData = Depends(get_current_user),
    db=Depends(get_db),
):
    return await fetch_users(db, current_user.tenant_id)


# ============ Regions ============

@api_router.get("/regions/states")
async def get_states():
    return BRAZIL_STATES


@api_router.get("/regions/states/{state_code}/cities", response_model=List[CityOption])
async def get_cities(state_code: str):
    if not state_label(state_code):
        raise HTTPException(status_code=404, detail="Unknown state")
    return await fetch_cities(state_code)


# ============ Leads ============

@api_router.post("/leads/search")
async def search_leads(
    request: LeadSearchRequest,
    session: DashboardSession = Depends(get_session),
):
    """Run the AI lead search; one search in flight per session"""
    board = session.leads
    if board.searching:
        raise HTTPException(status_code=409, detail="A search is already running")

    state = state_label(request.state) or request.state
    city = request.city or request.state

    board.searching = True
    try:
        results = await search_businesses(state, city, request.niche)
    except LeadSearchError as e:
        board.fail(e.message)
        raise
    except Exception as e:
        logger.error(f"Lead search crashed: {str(e)}")
        board.fail("Error searching leads. Check your connection or the API key.")
        raise HTTPException(status_code=500, detail=board.last_error)
    finally:
        board.searching = False

    board.replace(results)
    if not results:
        board.last_error = NO_RESULTS_MESSAGE
    return board.to_dict()


@api_router.get("/leads")
async def get_leads(session: DashboardSession = Depends(get_session)):
    return session.leads.to_dict()


@api_router.post("/leads/{lead_id}/toggle")
async def toggle_lead(lead_id: str, session: DashboardSession = Depends(get_session)):
    try:
        lead = session.leads.toggle_save(lead_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Lead not found")
    return {"lead": lead.model_dump(by_alias=True), "savedCount": session.leads.saved_count}


# ============ Chat ============

@api_router.get("/chat/messages", response_model=List[ChatMessage])
async def get_chat_messages(session: DashboardSession = Depends(get_session)):
    if session.chat is None:
        # not opened yet; opening here would lose the metrics context
        return [ChatMessage(id="welcome", role="model", text=WELCOME_MESSAGE)]
    return session.chat.transcript


@api_router.post("/chat/messages", response_model=ChatMessage)
async def send_chat_message(
    request: ChatRequest,
    session: DashboardSession = Depends(get_session),
):
    reply = await session.ensure_chat().send(request.message)
    if reply is None:
        raise HTTPException(status_code=400, detail="Message is empty")
    return reply


# ============ Settings & Session ============

@api_router.get("/settings", response_model=DashboardSettings)
async def get_settings(session: DashboardSession = Depends(get_session)):
    return session.settings


@api_router.put("/settings", response_model=DashboardSettings)
async def update_settings(
    request: SettingsUpdate,
    session: DashboardSession = Depends(get_session),
):
    update_data = request.model_dump(exclude_none=True)
    session.settings = session.settings.model_copy(update=update_data)
    return session.settings


@api_router.delete("/session")
async def reset_session(current_user: TokenData = Depends(get_current_user)):
    """Forget metrics, chat and leads, like a page reload"""
    sessions.reset(current_user.user_id)
    return {"success": True}


# ============ Health Check ============

@api_router.get("/")
async def root():
    return {"message": "Business Dashboard API"}


@api_router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "database_configured": is_supabase_configured(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Include router and add middleware
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    if not is_supabase_configured():
        logger.warning("Supabase not configured: data endpoints will return placeholder data")
    if not os.environ.get('OPENAI_API_KEY'):
        logger.warning("OPENAI_API_KEY not set: AI features will fall back or fail")
