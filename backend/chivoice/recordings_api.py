# chivoice/recordings_api.py
from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends

from .archival import archive_recording
from .deps import bad_request, error_response, get_repository, get_storage
from .errors import ChiVoiceError
from .recordings import submit_recording
from .schemas import SubmitRecordingInput, SubmitRecordingOutput
from .settings import settings

router = APIRouter(prefix="/recordings", tags=["recordings"])


@router.post("", response_model=SubmitRecordingOutput)
def submit_recording_route(
    payload: SubmitRecordingInput,
    background_tasks: BackgroundTasks,
    repo=Depends(get_repository),
    storage=Depends(get_storage),
):
    try:
        submitted = submit_recording(repo, storage, payload)
    except ChiVoiceError as e:
        if e.status_code >= 500:
            print(f"[recording] Failed for task={payload.task_id}: {e.message}")
        return error_response(e)
    except ValueError as e:
        return bad_request(str(e))

    outcome = submitted.outcome
    archive_scheduled = bool((settings.S5_PORTAL_URL or "").strip())
    if archive_scheduled:
        background_tasks.add_task(
            archive_recording,
            repo=repo,
            storage=storage,
            recording_id=outcome.recording.id,
            file_path=submitted.file_path,
        )

    return SubmitRecordingOutput(
        ok=True,
        recording=outcome.recording,
        progress=outcome.progress,
        profile=outcome.profile,
        archive_scheduled=archive_scheduled,
    )
