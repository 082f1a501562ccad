# routes/imports.py
from flask import Blueprint, current_app, jsonify, request
from pathlib import Path
import io
import logging

from config import Config
from database import SessionLocal, get_db_session
from importers import ImportConfigurationError, options_for_layout, release_import_lock, run_import

logger = logging.getLogger(__name__)
imports_bp = Blueprint('imports_bp', __name__, url_prefix='/api/import')

OPTION_FIELDS = (
    'lang', 'translation_code', 'source', 'work', 'force', 'resume',
    'has_header', 'header_marker', 'delimiter', 'quotechar', 'escapechar', 'encoding',
    'skip_lines_before_header', 'unwrap_brackets', 'batch_size',
)


def _session_factory():
    return current_app.config.get('SESSION_FACTORY') or SessionLocal


def _data_dir():
    return Path(current_app.config.get('IMPORT_DATA_DIR') or Config.IMPORT_DATA_DIR).resolve()


def _resolve_data_path(relative):
    """Resolve a caller-supplied path, refusing anything outside the data directory."""
    base = _data_dir()
    path = (base / relative).resolve()
    if base != path and base not in path.parents:
        return None
    return path


@imports_bp.route('/translations', methods=['POST'])
def import_translation():
    payload = request.get_json(silent=True) or request.form.to_dict()
    layout = payload.get('layout', 'generic')
    options = {name: payload[name] for name in OPTION_FIELDS if name in payload}

    try:
        options = options_for_layout(layout, **options)
    except ImportConfigurationError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    upload = request.files.get('file')
    if upload is not None:
        csv_source = io.BytesIO(upload.read())
        logger.info(f"Import upload received: {upload.filename}")
    elif payload.get('path'):
        csv_source = _resolve_data_path(payload['path'])
        if csv_source is None:
            return jsonify({"success": False, "message": "path must point inside the import data directory"}), 400
    else:
        return jsonify({"success": False, "message": "Provide a 'file' upload or a 'path'"}), 400

    try:
        result = run_import(csv_source, session_factory=_session_factory(), **options)
    except Exception as e:
        logger.error(f"Error during import via API: {str(e)}", exc_info=True)
        return jsonify({"success": False, "message": f"Internal server error: {str(e)}"}), 500

    if result.success:
        logger.info(f"Import of {result.translation_code} completed via API")
        return jsonify(result.model_dump()), 200
    logger.warning(f"Import failed via API: {result.message}")
    return jsonify(result.model_dump()), 400


@imports_bp.route('/locks/<translation_code>/release', methods=['POST'])
def release_lock(translation_code):
    try:
        with get_db_session(_session_factory()) as db:
            released = release_import_lock(db, translation_code)
        return jsonify({"translation_code": translation_code, "released": released}), 200
    except Exception as e:
        logger.error(f"Error releasing import lock {translation_code}: {str(e)}", exc_info=True)
        return jsonify({"error": "Failed to release import lock"}), 500
