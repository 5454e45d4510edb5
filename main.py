"""Helpdesk Backend API - Main entry point"""
from flask import Flask, jsonify, request
from flask_cors import CORS
import os
import logging
from datetime import datetime, timezone
from dotenv import load_dotenv

from helpdesk.support import support_bp
from helpdesk.tickets.errors import TicketError
from helpdesk.utils.constants import settings

# Load environment variables early
load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

# Quiet the HTTP client used by the Supabase SDK
logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app() -> Flask:
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = settings.MAX_ATTACHMENT_BYTES * 5

    app.logger.info("Starting helpdesk API server...")
    app.logger.info(f"Server started at: {datetime.now()}")

    CORS(app, resources={r"/api/*": {
        "origins": settings.ALLOWED_ORIGINS,
        "methods": ["GET", "POST", "PUT", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"],
        "supports_credentials": True
    }})

    # Register the support ticket blueprint
    app.register_blueprint(support_bp, url_prefix='/api/support')

    @app.errorhandler(TicketError)
    def handle_ticket_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok", "time": datetime.now(timezone.utc).isoformat()})

    @app.errorhandler(413)
    def request_too_large(error):
        app.logger.warning(f"Rejected oversized upload to {request.path}")
        return jsonify({"error": "Request too large", "code": "file_too_large"}), 413

    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    host = os.environ.get("HOST", "127.0.0.1")
    is_production = os.environ.get("FLASK_ENV") == "production"

    settings.validate('SUPABASE_URL', 'SUPABASE_SECRET_KEY', 'SUPABASE_JWT_SECRET')

    print("=" * 60)
    print("Starting Helpdesk API Server...")
    print("=" * 60)
    print(f"  Supabase URL: {settings.SUPABASE_URL}")
    print(f"  Attachment bucket: {settings.ATTACHMENT_BUCKET}")
    print(f"  Allowed origins: {', '.join(settings.ALLOWED_ORIGINS)}")
    print(f"\nServer starting at: http://{host}:{port}")
    print("=" * 60 + "\n")

    app.run(host=host, port=port, debug=not is_production, use_reloader=False)
