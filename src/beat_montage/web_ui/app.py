"""
Beat Montage HTTP API

Thin Flask surface over the job manager:

    POST /initMontageCreation   submit (multipart montageData + optional audioFile, or JSON)
    GET  /montageStatus?runId=  progress of a run
    GET  /getVideo?runId=       download a finished montage
    GET  /areYouAlive           liveness
"""

import json
import time
from pathlib import Path
from typing import Any, Optional

from flask import Flask, current_app, jsonify, request, send_file
from werkzeug.utils import secure_filename

from ..config import Settings, get_settings
from ..core.job_manager import MontageJobManager
from ..exceptions import InvalidRequest
from ..logger import logger
from .decorators import api_endpoint, require_args


def clear_output_directory(output_dir: Path) -> int:
    """Delete leftover montages from a previous process. Returns files removed."""
    if not output_dir.exists():
        logger.info("Downloads folder does not exist, skipping cleanup.")
        return 0

    removed = 0
    for path in output_dir.iterdir():
        if not path.is_file():
            continue
        try:
            path.unlink()
            removed += 1
        except OSError as e:
            logger.error(f"Error deleting file from downloads: {path}: {e}")
    logger.info(f"Downloads folder emptied on server start ({removed} files).")
    return removed


def save_audio_upload(upload_dir: Path) -> Optional[Path]:
    """Store the ``audioFile`` part if it is audio; other files are ignored."""
    upload = request.files.get("audioFile")
    if upload is None or not upload.filename:
        return None
    if not (upload.mimetype or "").startswith("audio/"):
        logger.warning(f"Ignoring upload with non-audio type {upload.mimetype!r}")
        return None

    extension = Path(secure_filename(upload.filename)).suffix
    target = upload_dir / f"audioFile-{time.time_ns()}{extension}"
    upload.save(target)
    return target


def read_montage_payload() -> Any:
    """Submission payload from a JSON body or the multipart ``montageData`` field."""
    if request.is_json:
        return request.get_json(silent=True)

    raw = request.form.get("montageData")
    if not raw:
        raise InvalidRequest("Invalid montage data provided.")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidRequest("Invalid montage data provided.") from e


def _manager() -> MontageJobManager:
    return current_app.extensions["montage_manager"]


def create_app(manager: Optional[MontageJobManager] = None, settings: Optional[Settings] = None) -> Flask:
    """
    Build the Flask app.

    Args:
        manager: Job manager to serve (default: wired from settings)
        settings: Configuration (default: global settings)
    """
    settings = settings or (manager.settings if manager else get_settings())
    settings.paths.ensure_directories()
    if settings.jobs.clear_output_on_start:
        clear_output_directory(settings.paths.output_dir)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.server.max_upload_mb * 1024 * 1024
    app.config["UPLOAD_FOLDER"] = settings.paths.upload_dir
    app.extensions["montage_manager"] = manager or MontageJobManager.from_settings(settings)

    @app.route("/initMontageCreation", methods=["POST"])
    @api_endpoint
    def init_montage_creation():
        audio_upload = None
        try:
            audio_upload = save_audio_upload(Path(app.config["UPLOAD_FOLDER"]))
            payload = read_montage_payload()
        except InvalidRequest:
            if audio_upload is not None:
                audio_upload.unlink(missing_ok=True)
            raise

        run_id = _manager().submit(payload, audio_upload=audio_upload)
        return jsonify({"status": "success", "runId": run_id})

    @app.route("/montageStatus", methods=["GET"])
    @api_endpoint
    @require_args("runId")
    def montage_status():
        run_id = request.args["runId"]
        run = _manager().get_status(run_id)
        return jsonify({
            "status": run["status"],
            "progress": run["progress"],
            "progressMessage": run["message"],
            "finishedMontageUrl": f"/getVideo?runId={run_id}",
        })

    @app.route("/getVideo", methods=["GET"])
    @api_endpoint
    @require_args("runId")
    def get_video():
        run_id = request.args["runId"]
        video_path = _manager().result_path(run_id)
        return send_file(
            video_path,
            as_attachment=True,
            download_name=f"montage_{secure_filename(run_id)}.mp4",
            mimetype="video/mp4",
        )

    @app.route("/areYouAlive", methods=["GET"])
    def are_you_alive():
        return jsonify({"message": "Yes!, alive and well!"})

    return app
