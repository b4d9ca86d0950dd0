"""
Upload API routes.

Runs are synchronous: the request returns once every file has been
processed. Progress is mirrored into an in-memory job that the job
endpoints expose.
"""

from typing import Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import structlog

from config import get_settings
from config.settings import Settings
from models.credentials import Credentials
from models.job import UploadJob
from models.transfer import AssetCategory
from models.upload import UploadRequest, UploadRunResponse
from services.upload_orchestrator import UploadOrchestrator, create_upload_orchestrator
from services.upload_job_service import UploadJobService, get_upload_job_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/uploads", tags=["Uploads"])

OrchestratorFactory = Callable[[Settings, Credentials], UploadOrchestrator]


def get_orchestrator_factory() -> OrchestratorFactory:
    """Dependency: builds a fresh orchestrator per request."""
    return create_upload_orchestrator


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _run_upload(
    request: UploadRequest,
    category: AssetCategory,
    settings: Settings,
    jobs: UploadJobService,
    factory: OrchestratorFactory,
):
    source = f"folder {request.folder_id}" if request.folder_id else f"{len(request.file_ids)} files"
    job = jobs.create(f"{category.value} upload: {source}", total_files=len(request.file_ids))

    try:
        credentials = Credentials(
            access_token=request.access_token,
            refresh_token=request.refresh_token,
        )
        orchestrator = factory(settings, credentials)
        jobs.start(job.id)

        def on_progress(processed: int, total: int, result) -> None:
            jobs.update_progress(job.id, processed, total_files=total)

        if request.folder_id:
            summary = orchestrator.run_folder(
                request.folder_id,
                category,
                dry_run=request.dry_run,
                on_progress=on_progress,
            )
        else:
            summary = orchestrator.run_file_ids(
                request.file_ids,
                category,
                dry_run=request.dry_run,
                on_progress=on_progress,
            )

        jobs.complete(job.id)
        return UploadRunResponse(job_id=job.id, summary=summary)

    except Exception as e:
        jobs.fail(job.id, str(e))
        return handle_error(e)


# ===================
# ROUTES
# ===================

@router.post("/images", response_model=UploadRunResponse)
def upload_images(
    request: UploadRequest,
    settings: Settings = Depends(get_settings),
    jobs: UploadJobService = Depends(get_upload_job_service),
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """
    Sync product images into the color image metafield.

    Raises:
        422: Neither or both of folder_id and file_ids given
        503: Folder lookup or catalog fetch failed, or Shopify not configured
    """
    return _run_upload(request, AssetCategory.IMAGE, settings, jobs, factory)


@router.post("/specs", response_model=UploadRunResponse)
def upload_specs(
    request: UploadRequest,
    settings: Settings = Depends(get_settings),
    jobs: UploadJobService = Depends(get_upload_job_service),
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """Sync PDF spec sheets into the spec sheet metafield."""
    return _run_upload(request, AssetCategory.SPEC, settings, jobs, factory)


@router.get("/jobs", response_model=list[UploadJob])
def list_jobs(jobs: UploadJobService = Depends(get_upload_job_service)):
    """List upload jobs, newest first."""
    return jobs.list_jobs()


@router.get("/jobs/{job_id}", response_model=UploadJob)
def get_job(job_id: str, jobs: UploadJobService = Depends(get_upload_job_service)):
    """
    Get a single upload job.

    Raises:
        404: Job not found
    """
    try:
        return jobs.get(job_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/jobs/completed")
def clear_completed_jobs(jobs: UploadJobService = Depends(get_upload_job_service)):
    """Remove completed jobs from memory."""
    return {"removed": jobs.clear_completed()}
