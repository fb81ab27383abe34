"""FastAPI web interface for photo-catalog."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from photo_catalog import __version__
from photo_catalog.library.catalog_store import Catalog
from photo_catalog.library.config import CatalogConfig, get_default_config
from photo_catalog.library.errors import (
    DuplicateError,
    ImageDecodeError,
    NotADirectoryPathError,
    NotFoundError,
    PhotoCatalogError,
    UnsupportedFormatError,
)
from photo_catalog.library.exif import extract_exif
from photo_catalog.library.imaging import read_dimensions, resize_image
from photo_catalog.library.ingest import ingest_directory
from photo_catalog.library.models import SORT_FIELDS, MetadataPatch, Photo, PhotoFilter
from photo_catalog.library.scanner import scan_images
from photo_catalog.library.thumbnails import ThumbnailCache

logger = logging.getLogger(__name__)

# Error kind -> HTTP status
ERROR_STATUS = [
    (NotFoundError, 404),
    (DuplicateError, 409),
    (NotADirectoryPathError, 400),
    (UnsupportedFormatError, 400),
    (ImageDecodeError, 422),
]


# Pydantic models for request/response


class ScanRequest(BaseModel):
    directory: str = Field(..., description="Directory to scan")
    recursive: bool = Field(True, description="Scan subdirectories")


class ImageFileResponse(BaseModel):
    path: str
    filename: str
    size: int


class IngestResponse(BaseModel):
    found: int
    added: List[int]
    skipped: List[str]
    failed: Dict[str, str]


class ExifResponse(BaseModel):
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    lens_model: Optional[str] = None
    focal_length: Optional[float] = None
    aperture: Optional[float] = None
    shutter_speed: Optional[str] = None
    iso: Optional[int] = None
    exposure_bias: Optional[float] = None
    flash: Optional[str] = None
    orientation: Optional[int] = None
    capture_date: Optional[str] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    gps_altitude: Optional[float] = None


class DimensionsResponse(BaseModel):
    width: int
    height: int


class PhotoCreate(BaseModel):
    path: str
    filename: str
    file_size: int
    width: int
    height: int
    capture_date: Optional[str] = None
    rating: int = 0
    is_favorite: bool = False
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    thumbnail_path: Optional[str] = None


class PhotoResponse(PhotoCreate):
    id: int
    added_at: str


class MetadataUpdate(BaseModel):
    rating: Optional[int] = Field(None, description="New rating (UI expects 0-5)")
    is_favorite: Optional[bool] = None
    tags: Optional[List[str]] = None
    description: Optional[str] = None


class CreatedResponse(BaseModel):
    id: int


class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Unique collection name")


class CollectionResponse(BaseModel):
    id: int
    name: str
    created_at: str


class ThumbnailRequest(BaseModel):
    image_path: str


class ThumbnailResponse(BaseModel):
    thumbnail_path: str
    width: int
    height: int


class ResizeRequest(BaseModel):
    source_path: str
    dest_path: str
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    preserve_exif: bool = False


class CacheStatsResponse(BaseModel):
    cache_dir: str
    size_bytes: int


class CacheClearResponse(BaseModel):
    removed: int


class StatsResponse(BaseModel):
    total_photos: int
    favorites: int
    total_collections: int
    total_memberships: int
    database_path: str


def _photo_response(photo: Photo) -> PhotoResponse:
    return PhotoResponse(**{**photo.to_dict(), "tags": photo.tags})


# Dependencies


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def get_thumbnail_cache(request: Request) -> ThumbnailCache:
    return request.app.state.thumbnails


def get_config(request: Request) -> CatalogConfig:
    return request.app.state.config


def create_app(config: Optional[CatalogConfig] = None) -> FastAPI:
    """Build the API. The catalog is opened on startup and closed on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_config = config or get_default_config()
        app.state.config = app_config
        app.state.catalog = Catalog(app_config.db_path)
        app.state.thumbnails = ThumbnailCache(
            app_config.cache_dir,
            max_edge=app_config.thumbnail_size,
            check_source_mtime=app_config.thumbnail_check_mtime,
        )
        logger.info(f"Serving catalog {app_config.db_path}")
        try:
            yield
        finally:
            app.state.catalog.close()

    app = FastAPI(
        title="photo-catalog API",
        description="Local photo catalog with EXIF metadata and a thumbnail cache",
        version=__version__,
        lifespan=lifespan,
    )

    # Enable CORS for frontend development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PhotoCatalogError)
    async def catalog_error_handler(request: Request, exc: PhotoCatalogError):
        status_code = 500
        for error_type, code in ERROR_STATUS:
            if isinstance(exc, error_type):
                status_code = code
                break
        if status_code == 500:
            logger.error(f"Request failed: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    # Files and metadata

    @app.post("/api/scan", response_model=List[ImageFileResponse])
    def scan(request: ScanRequest):
        """List supported images under a directory."""
        return [image.to_dict() for image in scan_images(request.directory, recursive=request.recursive)]

    @app.post("/api/ingest", response_model=IngestResponse)
    def ingest(
        request: ScanRequest,
        catalog: Catalog = Depends(get_catalog),
        thumbnails: ThumbnailCache = Depends(get_thumbnail_cache),
    ):
        """Scan a directory and catalog every new image."""
        report = ingest_directory(catalog, thumbnails, request.directory, recursive=request.recursive)
        return report.to_dict()

    @app.get("/api/exif", response_model=ExifResponse)
    def get_exif(path: str = Query(..., description="Image file")):
        return extract_exif(path).to_dict()

    @app.get("/api/dimensions", response_model=DimensionsResponse)
    def get_dimensions(path: str = Query(..., description="Image file")):
        return read_dimensions(path).to_dict()

    # Photos

    @app.get("/api/photos", response_model=List[PhotoResponse])
    def list_photos(catalog: Catalog = Depends(get_catalog)):
        return [_photo_response(photo) for photo in catalog.list_photos()]

    @app.post("/api/photos", response_model=CreatedResponse, status_code=201)
    def insert_photo(photo: PhotoCreate, catalog: Catalog = Depends(get_catalog)):
        photo_id = catalog.insert_photo(Photo(**photo.model_dump()))
        return CreatedResponse(id=photo_id)

    @app.get("/api/photos/search", response_model=List[PhotoResponse])
    def search_photos(
        keyword: Optional[str] = None,
        tag: Optional[List[str]] = Query(None, description="Required tag (repeatable)"),
        min_rating: Optional[int] = None,
        favorites_only: bool = False,
        captured_after: Optional[str] = None,
        captured_before: Optional[str] = None,
        sort_by: str = Query("added_at", pattern=f"^({'|'.join(SORT_FIELDS)})$"),
        descending: bool = True,
        limit: Optional[int] = Query(None, gt=0),
        catalog: Catalog = Depends(get_catalog),
    ):
        criteria = PhotoFilter(
            keyword=keyword,
            tags=tag or [],
            min_rating=min_rating,
            favorites_only=favorites_only,
            captured_after=captured_after,
            captured_before=captured_before,
            sort_by=sort_by,
            descending=descending,
            limit=limit,
        )
        return [_photo_response(photo) for photo in catalog.search_photos(criteria)]

    @app.get("/api/photos/{photo_id}", response_model=PhotoResponse)
    def get_photo(photo_id: int, catalog: Catalog = Depends(get_catalog)):
        return _photo_response(catalog.get_photo(photo_id))

    @app.patch("/api/photos/{photo_id}", response_model=PhotoResponse)
    def update_metadata(photo_id: int, update: MetadataUpdate, catalog: Catalog = Depends(get_catalog)):
        catalog.update_metadata(photo_id, MetadataPatch(**update.model_dump()))
        return _photo_response(catalog.get_photo(photo_id))

    @app.delete("/api/photos/{photo_id}", status_code=204)
    def delete_photo(photo_id: int, catalog: Catalog = Depends(get_catalog)):
        catalog.delete_photo(photo_id)
        return Response(status_code=204)

    # Collections

    @app.get("/api/collections", response_model=List[CollectionResponse])
    def list_collections(catalog: Catalog = Depends(get_catalog)):
        return [collection.to_dict() for collection in catalog.list_collections()]

    @app.post("/api/collections", response_model=CreatedResponse, status_code=201)
    def create_collection(request: CollectionCreate, catalog: Catalog = Depends(get_catalog)):
        return CreatedResponse(id=catalog.create_collection(request.name))

    @app.delete("/api/collections/{collection_id}", status_code=204)
    def delete_collection(collection_id: int, catalog: Catalog = Depends(get_catalog)):
        catalog.delete_collection(collection_id)
        return Response(status_code=204)

    @app.get("/api/collections/{collection_id}/photos", response_model=List[PhotoResponse])
    def list_photos_in_collection(collection_id: int, catalog: Catalog = Depends(get_catalog)):
        return [_photo_response(photo) for photo in catalog.list_photos_in_collection(collection_id)]

    @app.put("/api/collections/{collection_id}/photos/{photo_id}", status_code=204)
    def add_photo_to_collection(collection_id: int, photo_id: int, catalog: Catalog = Depends(get_catalog)):
        catalog.add_membership(photo_id, collection_id)
        return Response(status_code=204)

    @app.delete("/api/collections/{collection_id}/photos/{photo_id}", status_code=204)
    def remove_photo_from_collection(collection_id: int, photo_id: int, catalog: Catalog = Depends(get_catalog)):
        catalog.remove_membership(photo_id, collection_id)
        return Response(status_code=204)

    # Thumbnails and exports

    @app.post("/api/thumbnails", response_model=ThumbnailResponse)
    def generate_thumbnail(request: ThumbnailRequest, thumbnails: ThumbnailCache = Depends(get_thumbnail_cache)):
        return thumbnails.get_thumbnail(request.image_path).to_dict()

    @app.post("/api/resize", response_model=DimensionsResponse)
    def resize(request: ResizeRequest):
        dimensions = resize_image(
            request.source_path,
            request.dest_path,
            width=request.width,
            height=request.height,
            preserve_exif=request.preserve_exif,
        )
        return dimensions.to_dict()

    @app.get("/api/cache", response_model=CacheStatsResponse)
    def get_cache_size(thumbnails: ThumbnailCache = Depends(get_thumbnail_cache)):
        return CacheStatsResponse(cache_dir=str(thumbnails.cache_dir), size_bytes=thumbnails.measure())

    @app.delete("/api/cache", response_model=CacheClearResponse)
    def clear_cache(thumbnails: ThumbnailCache = Depends(get_thumbnail_cache)):
        return CacheClearResponse(removed=thumbnails.evict())

    # Catalog-wide

    @app.get("/api/export")
    def export(catalog: Catalog = Depends(get_catalog)) -> Dict[str, Any]:
        """Complete snapshot of photos, collections and memberships."""
        return catalog.export_snapshot().to_dict()

    @app.get("/api/stats", response_model=StatsResponse)
    def get_stats(catalog: Catalog = Depends(get_catalog), app_config: CatalogConfig = Depends(get_config)):
        stats = catalog.get_stats()
        return StatsResponse(database_path=app_config.db_path, **stats)

    @app.get("/api/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now()}

    return app


app = create_app()
