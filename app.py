# app.py
from flask import Flask, jsonify, request, g
from flask_cors import CORS
from routes.imports import imports_bp
from database import get_db_session
from config import Config
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.middleware.proxy_fix import ProxyFix
import os
import logging
import time
import sys

# Configure logging to output to stdout
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


def create_app(**config_overrides):
    """Build the import API. ``SESSION_FACTORY`` in the config overrides the default database."""
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    app.json.sort_keys = False
    app.config.update(
        MAX_CONTENT_LENGTH=Config.MAX_CONTENT_LENGTH,
        IMPORT_DATA_DIR=str(Config.IMPORT_DATA_DIR),
        SESSION_FACTORY=None,
    )
    app.config.update(config_overrides)
    app.url_map.strict_slashes = False

    # The admin UI that triggers imports may be served from another origin
    CORS(app, resources={
        r"/api/*": {
            "origins": os.getenv("CORS_ORIGINS", "*"),
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    app.register_blueprint(imports_bp)

    @app.before_request
    def start_timer():
        g.start_time = time.time()

    @app.after_request
    def log_duration(response):
        duration = time.time() - g.get('start_time', time.time())
        logger.info(f"{request.method} {request.path} -> {response.status_code} in {duration:.2f}s")
        return response

    @app.errorhandler(413)
    def upload_too_large(e):
        limit_mb = app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return jsonify({"success": False, "message": f"Upload exceeds the {limit_mb}MB limit"}), 413

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": f"No route for {request.path}"}), 404

    @app.route('/health', methods=['GET'])
    def health():
        """Health check that also verifies the database connection"""
        try:
            with get_db_session(app.config['SESSION_FACTORY']) as db:
                db.execute(text('SELECT 1'))
            return jsonify({'status': 'healthy', 'database': 'connected', 'timestamp': time.time()})
        except SQLAlchemyError as e:
            logger.error(f"Health check failed: {str(e)}")
            return jsonify({'status': 'unhealthy', 'error': str(e), 'timestamp': time.time()}), 500

    return app


app = create_app()


if __name__ == '__main__':
    print("Starting Flask server...")
    port = int(os.getenv('PORT', 5001))
    app.run(debug=True, port=port)
