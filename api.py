import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, Field

from auth import CredentialService
from config import configure_logging, settings
from database import DocumentStore, DuplicateUserError, MalformedStoreError, ReviewNotFoundError
from library import Library
from models import Book, Review, User, utcnow
from utils.validators import MAX_RATING, MIN_RATING, TextValidator, UserValidator

logger = logging.getLogger(__name__)

# --- Models ---
class BookModel(BaseModel):
    id: int
    title: str
    author: str
    category: str = ""
    summary: str = ""

class BookCreateModel(BaseModel):
    title: str
    author: str
    category: str = ""
    summary: str = ""

class ReviewModel(BaseModel):
    id: int
    book_id: int
    user_name: str
    rating: int
    comment: str = ""
    created_at: datetime

class ReviewCreateModel(BaseModel):
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    comment: str = ""

class ReviewUpdateModel(ReviewCreateModel):
    pass

class RatingModel(BaseModel):
    book_id: int
    average_rating: float
    review_count: int

class StatsModel(BaseModel):
    total_books: int
    unique_authors: int
    total_categories: int
    total_reviews: int

class UserModel(BaseModel):
    id: int
    user_name: str
    is_admin: bool

class CredentialsModel(BaseModel):
    user_name: str
    password: str


def _book_model(book: Book) -> BookModel:
    return BookModel(**book.to_dict())

def _review_model(review: Review) -> ReviewModel:
    return ReviewModel(
        id=review.id,
        book_id=review.book_id,
        user_name=review.user_name,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
    )

def _user_model(user: User) -> UserModel:
    return UserModel(id=user.id, user_name=user.user_name, is_admin=user.is_admin)


# --- Dependencies ---
basic_auth = HTTPBasic(auto_error=False)

def get_library(request: Request) -> Library:
    return Library(request.app.state.store)

def get_credential_service(request: Request) -> CredentialService:
    return CredentialService(request.app.state.store)

def get_current_user(
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    service: CredentialService = Depends(get_credential_service),
) -> User:
    """Authenticate the request with HTTP Basic credentials."""
    user = None
    if credentials is not None:
        user = service.validate_user(credentials.username, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid user name or password.",
            headers={"WWW-Authenticate": "Basic"},
        )
    return user

def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Administrator privileges required.")
    return user

def _ensure_can_modify(review: Review, user: User) -> None:
    if not user.is_admin and review.user_name.lower() != user.user_name.lower():
        raise HTTPException(status_code=403, detail="You can only modify your own reviews.")


# --- Application factory ---
def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """Build the API around ``store`` (a store on ``settings.data_dir`` by default)."""
    configure_logging()
    if store is None:
        store = DocumentStore(settings.data_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.initialize()
        logger.info(f"Document store ready in {store.data_dir}")
        yield

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MalformedStoreError)
    async def malformed_store_handler(request: Request, exc: MalformedStoreError):
        logger.error(f"Malformed store while handling {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Catalog data is unreadable."})

    @app.exception_handler(ReviewNotFoundError)
    async def review_not_found_handler(request: Request, exc: ReviewNotFoundError):
        return JSONResponse(status_code=404, content={"detail": "Review not found."})

    @app.exception_handler(DuplicateUserError)
    async def duplicate_user_handler(request: Request, exc: DuplicateUserError):
        return JSONResponse(status_code=409, content={"detail": "User name already exists."})

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # --- Health ---
    @app.get("/health")
    def health(library: Library = Depends(get_library)):
        return {
            "status": "healthy",
            "timestamp": utcnow().isoformat(),
            "total_books": len(library.list_books()),
        }

    # --- Books ---
    @app.get("/books", response_model=List[BookModel])
    def list_books(
        search: Optional[str] = Query(None, description="Matches title or author"),
        author: Optional[str] = Query(None),
        category: Optional[str] = Query(None),
        library: Library = Depends(get_library),
    ):
        return [_book_model(b) for b in library.list_books(search=search, author=author, category=category)]

    @app.get("/books/{book_id}", response_model=BookModel)
    def get_book(book_id: int, library: Library = Depends(get_library)):
        book = library.get_book(book_id)
        if not book:
            raise HTTPException(status_code=404, detail="Book not found.")
        return _book_model(book)

    @app.post("/books", response_model=BookModel, status_code=201)
    def add_book(payload: BookCreateModel, library: Library = Depends(get_library),
                 admin: User = Depends(require_admin)):
        if not TextValidator.validate_title(payload.title) or not TextValidator.validate_author(payload.author):
            raise HTTPException(status_code=422, detail="Provide a valid title and author.")
        book = Book(
            title=TextValidator.sanitize_text(payload.title),
            author=TextValidator.sanitize_text(payload.author),
            category=TextValidator.sanitize_text(payload.category),
            summary=TextValidator.sanitize_text(payload.summary),
        )
        return _book_model(library.add_book(book))

    @app.get("/categories", response_model=List[str])
    def list_categories(library: Library = Depends(get_library)):
        return library.list_categories()

    @app.get("/stats", response_model=StatsModel)
    def get_stats(library: Library = Depends(get_library)):
        return StatsModel(**library.get_statistics())

    # --- Reviews ---
    @app.get("/books/{book_id}/reviews", response_model=List[ReviewModel])
    def get_book_reviews(book_id: int, library: Library = Depends(get_library)):
        return [_review_model(r) for r in library.list_reviews_for_book(book_id)]

    @app.get("/books/{book_id}/rating", response_model=RatingModel)
    def get_book_rating(book_id: int, library: Library = Depends(get_library)):
        return RatingModel(**library.get_book_rating(book_id))

    @app.post("/books/{book_id}/reviews", response_model=ReviewModel, status_code=201)
    def add_book_review(book_id: int, payload: ReviewCreateModel, library: Library = Depends(get_library),
                        user: User = Depends(get_current_user)):
        if not library.get_book(book_id):
            raise HTTPException(status_code=404, detail="Book not found.")
        review = Review(
            book_id=book_id,
            user_name=user.user_name,
            rating=payload.rating,
            comment=TextValidator.sanitize_text(payload.comment),
        )
        return _review_model(library.add_review(review))

    @app.get("/reviews/{review_id}", response_model=ReviewModel)
    def get_review(review_id: int, library: Library = Depends(get_library)):
        review = library.get_review(review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found.")
        return _review_model(review)

    @app.put("/reviews/{review_id}", response_model=ReviewModel)
    def update_review(review_id: int, payload: ReviewUpdateModel, library: Library = Depends(get_library),
                      user: User = Depends(get_current_user)):
        existing = library.get_review(review_id)
        if not existing:
            raise HTTPException(status_code=404, detail="Review not found.")
        _ensure_can_modify(existing, user)
        existing.rating = payload.rating
        existing.comment = TextValidator.sanitize_text(payload.comment)
        return _review_model(library.update_review(existing))

    @app.delete("/reviews/{review_id}")
    def delete_review(review_id: int, library: Library = Depends(get_library),
                      user: User = Depends(get_current_user)):
        existing = library.get_review(review_id)
        if not existing:
            raise HTTPException(status_code=404, detail="Review not found.")
        _ensure_can_modify(existing, user)
        library.delete_review(review_id)
        return {"message": "Review deleted."}

    @app.get("/users/{user_name}/reviews", response_model=List[ReviewModel])
    def get_user_reviews(user_name: str, library: Library = Depends(get_library)):
        return [_review_model(r) for r in library.list_reviews_by_user(user_name)]

    # --- Authentication ---
    @app.post("/auth/register", response_model=UserModel, status_code=201)
    def register(payload: CredentialsModel, service: CredentialService = Depends(get_credential_service)):
        if not UserValidator.validate_user_name(payload.user_name):
            raise HTTPException(status_code=422, detail="User name must be 3-32 letters, digits, '.', '_' or '-'.")
        if not UserValidator.validate_password(payload.password):
            raise HTTPException(status_code=422, detail="Password is too short.")
        return _user_model(service.register_user(payload.user_name, payload.password))

    @app.post("/auth/login", response_model=UserModel)
    def login(payload: CredentialsModel, service: CredentialService = Depends(get_credential_service)):
        user = service.validate_user(payload.user_name, payload.password)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid user name or password.")
        return _user_model(user)

    @app.get("/auth/me", response_model=UserModel)
    def me(user: User = Depends(get_current_user)):
        return _user_model(user)


app = create_app()
