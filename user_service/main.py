import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
import uvicorn

from . import schemas
from .config import Settings
from .db import Database
from .exceptions import AuthError, DuplicateKeyError, NotFoundError, ValidationError
from .models import User
from .services import UserDatabaseService
from .utils import PasswordHasher, TokenManager, token_claims_for

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# --- Prometheus metrics ---
REQUEST_COUNT = Counter(
    "user_requests_total",
    "Total requests processed by the User Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "user_request_latency_seconds",
    "Request latency in seconds for the User Service",
    ["endpoint"]
)

bearer_scheme = HTTPBearer(auto_error=False)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')


# --- Dependencies ---

def get_service(request: Request) -> UserDatabaseService:
    return request.app.state.user_service


def get_tokens(request: Request) -> TokenManager:
    return request.app.state.tokens


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: UserDatabaseService = Depends(get_service),
    tokens: TokenManager = Depends(get_tokens),
) -> User:
    """
    Resolves the bearer token into the stored user.
    Missing token -> 401, invalid or expired token -> 403.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = tokens.decode_token(credentials.credentials)
    if payload is None or "sub" not in payload:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")

    try:
        return service.get_by_id(int(payload["sub"]))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token payload")
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


# --- Users router ---

users_router = APIRouter(prefix="/api/users", tags=["Users"])


@users_router.get("", response_model=schemas.UserPage)
def list_users(page: int = Query(1, ge=1), service: UserDatabaseService = Depends(get_service)):
    """Returns one page of users ordered by ascending id."""
    try:
        result = service.list_page(page)
    except Exception as e:
        logger.error(f"Error fetching users page {page}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch users")

    return schemas.UserPage(
        data=[schemas.UserResponse.model_validate(u) for u in result.items],
        has_more=result.has_more,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@users_router.get("/{user_id}", response_model=schemas.UserResponse)
def get_user(user_id: int, service: UserDatabaseService = Depends(get_service)):
    try:
        return service.get_by_id(user_id)
    except NotFoundError:
        logger.warning(f"User with ID {user_id} not found.")
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    except Exception as e:
        logger.error(f"Error fetching user {user_id}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch user")


@users_router.post("", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user: schemas.UserCreate, service: UserDatabaseService = Depends(get_service)):
    """Creates a user. Role defaults to 'User' and status to 'Active'."""
    logger.info(f"Create user request for username: {user.username}")
    try:
        return service.create(user)
    except DuplicateKeyError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except ValidationError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception as e:
        logger.error(f"Error creating user {user.username}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create user")


@users_router.put("/{user_id}", response_model=schemas.UserResponse)
def update_user(user_id: int, patch: schemas.UserUpdate, service: UserDatabaseService = Depends(get_service)):
    """Partial update: only the supplied fields change."""
    try:
        return service.update(user_id, patch)
    except NotFoundError:
        logger.warning(f"Update failed: user {user_id} not found.")
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    except (DuplicateKeyError, ValidationError) as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update user")


@users_router.delete("/{user_id}", response_model=schemas.DeleteResponse)
def delete_user(user_id: int, service: UserDatabaseService = Depends(get_service)):
    try:
        deleted = service.delete(user_id)
    except NotFoundError:
        logger.warning(f"Delete failed: user {user_id} not found.")
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete user")

    return {"message": "User deleted successfully", "user": schemas.UserResponse.model_validate(deleted)}


# --- Auth router ---

auth_router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _auth_response(user: User, tokens: TokenManager) -> dict:
    token = tokens.create_access_token(token_claims_for(user))
    return {"token": token, "user": schemas.UserResponse.model_validate(user)}


@auth_router.post("/login", response_model=schemas.AuthResponse)
def login(
    credentials: schemas.LoginRequest,
    service: UserDatabaseService = Depends(get_service),
    tokens: TokenManager = Depends(get_tokens),
):
    """Authenticates by email and password and returns a JWT plus the user."""
    logger.info(f"Login attempt for user: {credentials.email}")
    try:
        user = service.authenticate(credentials.email, credentials.password)
    except AuthError:
        logger.warning(f"Login failed for user: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        logger.error(f"Login error for {credentials.email}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Login failed")

    logger.info(f"Login successful for user_id: {user.id}")
    return _auth_response(user, tokens)


@auth_router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    registration: schemas.RegisterRequest,
    service: UserDatabaseService = Depends(get_service),
    tokens: TokenManager = Depends(get_tokens),
):
    """Registers a new active 'User' account and logs it in."""
    logger.info(f"Registration attempt for email: {registration.email}")
    try:
        if service.find_by_email(registration.email) is not None:
            logger.warning(f"Registration failed: email {registration.email} already exists.")
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "User with this email already exists")
        user = service.create_with_credentials(registration)
    except HTTPException:
        raise
    except DuplicateKeyError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception as e:
        logger.error(f"Registration error for {registration.email}: {e}", exc_info=True)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Registration failed")

    logger.info(f"User registered successfully: {user.username} ({user.email})")
    return _auth_response(user, tokens)


@auth_router.get("/me", response_model=schemas.UserResponse)
def me(current_user: User = Depends(get_current_user)):
    """Returns the user owning the bearer token."""
    return current_user


# --- Application factory ---

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the application with its own database and service objects.
    The table is created (and seeded) on startup and the engine is disposed on shutdown.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    database = Database(settings.database_url)
    service = UserDatabaseService(
        database,
        PasswordHasher(settings.bcrypt_rounds),
        page_size=settings.page_size,
        seed_demo_data=settings.seed_demo_data,
    )
    tokens = TokenManager(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service.initialize()
        logger.info(f"User Service ready (page size {settings.page_size}).")
        try:
            yield
        finally:
            service.close()

    app = FastAPI(
        title="User Management API",
        description="CRUD administration of users with JWT authentication.",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.user_service = service
    app.state.tokens = tokens

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Metrics middleware ---
    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start_time = time.time()
        response = None
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as exc:
            logger.error(f"Unhandled exception during request processing: {exc}", exc_info=True)
            response = JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
        finally:
            latency = time.time() - start_time
            endpoint = request.url.path
            final_status_code = getattr(response, "status_code", status_code)
            REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=final_status_code
            ).inc()

        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Missing/invalid fields are a 400 for this API, not FastAPI's default 422.
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        logger.warning(f"Invalid request on {request.url.path}: {'; '.join(messages)}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "; ".join(messages) or "Invalid request"},
        )

    # --- Health and metrics endpoints ---
    @app.get("/metrics", tags=["Monitoring"])
    def metrics():
        """Exposes application metrics for Prometheus."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health", tags=["Monitoring"])
    def health_check():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": "User Management Backend is running!",
        }

    @app.get("/", tags=["Monitoring"])
    def root():
        return {
            "message": "User Management API",
            "version": API_VERSION,
            "endpoints": {
                "health": "/health",
                "users": "/api/users",
                "auth": "/api/auth",
            },
        }

    app.include_router(users_router)
    app.include_router(auth_router)
    return app


if __name__ == "__main__":
    # No module-level app: uvicorn calls create_app() itself.
    uvicorn.run(
        "user_service.main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3001")),
    )
