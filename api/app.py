# Main Flask application

from flask import Flask, jsonify

from api.routes import insights_bp
from config.logger import setup_logger
from config.settings import get_settings


def create_app(config=None):
    """
    Application factory.

    Args:
        config: Optional mapping merged into app.config (e.g. {"TESTING": True})
    """
    app = Flask(__name__)
    app.json.sort_keys = False
    app.config["MAX_CONTENT_LENGTH"] = 100 * 1024 * 1024
    if config:
        app.config.update(config)

    app.register_blueprint(insights_bp, url_prefix="/api/insights")

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok", "max_rows": get_settings().max_rows})

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def payload_too_large(error):
        return jsonify({"error": "Request body too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"error": "Internal server error"}), 500

    return app


def main():
    settings = get_settings()
    setup_logger("api")
    create_app().run(host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
