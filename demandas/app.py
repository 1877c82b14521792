import logging

from flask import Flask, current_app, jsonify, request, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, MethodNotAllowed

from .config import Settings, get_settings
from .db import make_engine
from .errors import DemandasError, StorageError, ValidationError
from .logging_setup import setup_logging
from .migrations import run_migrations
from .store import TaskStore

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, store: TaskStore | None = None) -> Flask:
    settings = settings or get_settings()

    app = Flask(__name__, static_folder=str(settings.static_dir), static_url_path="/")
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length
    CORS(app, send_wildcard=True)

    if store is None:
        settings.db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = make_engine(settings.db_path)
        version = run_migrations(engine)
        store = TaskStore(engine)
        logger.info("Database ready db=%s schema=%s", settings.db_path, version)
    app.extensions["task_store"] = store

    _register_routes(app)
    _register_error_handlers(app)
    return app


def get_store() -> TaskStore:
    return current_app.extensions["task_store"]


def _json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


# ---------- API ----------
def _register_routes(app: Flask) -> None:
    @app.get("/api/tasks")
    def list_tasks():
        return jsonify(get_store().list_all())

    @app.post("/api/tasks")
    def create_task():
        task = get_store().create(_json_body())
        return jsonify({"success": True, "task": task}), 201

    @app.put("/api/tasks/<task_id>")
    def update_task(task_id):
        task = get_store().update(task_id, _json_body())
        return jsonify({"success": True, "task": task})

    @app.delete("/api/tasks/<task_id>")
    def delete_task(task_id):
        removed = get_store().delete(task_id)
        return jsonify({"success": True, "deleted": removed})

    @app.get("/api/tasks/employee/<employee_id>")
    def tasks_by_employee(employee_id):
        return jsonify(get_store().list_by_employee(employee_id))

    @app.get("/api/tasks/status/", defaults={"status": ""})
    @app.get("/api/tasks/status/<status>")
    def tasks_by_status(status):
        return jsonify(get_store().list_by_status(status))

    @app.get("/api/stats")
    def stats():
        return jsonify({"success": True, "stats": get_store().stats()})

    @app.get("/health")
    def health():
        try:
            n = get_store().count()
        except StorageError as e:
            return jsonify({"status": "ERROR", "error": e.message}), 500
        return jsonify({"status": "OK", "demandas": n})

    @app.get("/")
    def root():
        return send_from_directory(app.static_folder, "index.html")

    @app.after_request
    def log_request(response):
        logger.info("%s %s -> %s", request.method, request.path, response.status_code)
        return response


def _only_static_matches(e: MethodNotAllowed) -> bool:
    """True when the path exists only through the `/<path:filename>` static rule."""
    if not set(e.valid_methods or ()) <= {"GET", "HEAD", "OPTIONS"}:
        return False
    adapter = current_app.url_map.bind_to_environ(request.environ)
    try:
        endpoint, _ = adapter.match(request.path, method="GET")
    except HTTPException:
        return False
    return endpoint == "static"


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DemandasError)
    def handle_app_error(e: DemandasError):
        if isinstance(e, StorageError):
            logger.error("%s %s failed: %s", request.method, request.path, e.message)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.path, e.message)
        return jsonify({"success": False, "error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        if e.code == 404 or (isinstance(e, MethodNotAllowed) and _only_static_matches(e)):
            return jsonify({"success": False, "error": "Not found", "path": request.path}), 404
        return jsonify({"success": False, "error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"success": False, "error": "Internal server error"}), 500


def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Server starting on port %s", settings.port)
    try:
        app.run(host=settings.host, port=settings.port, debug=False, threaded=True)
    finally:
        app.extensions["task_store"].close()


if __name__ == "__main__":
    main()
