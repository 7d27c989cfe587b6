"""HTTP API for managing subscriptions and triggering events."""

import threading
from typing import List, Optional

import pydantic
import structlog
from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from webhook_dispatcher.core.errors import NotFoundError, ValidationError
from webhook_dispatcher.dispatcher import WebhookDispatcher

logger = structlog.get_logger(__name__)

app = Flask(__name__)
dispatcher: Optional[WebhookDispatcher] = None
server = None


class RegisterSubscriptionRequest(pydantic.BaseModel):
    """Body of ``POST /api/webhooks``."""

    url: str
    events: List[str]
    secret: Optional[str] = None
    enabled: bool = True


class UpdateSubscriptionRequest(pydantic.BaseModel):
    """Body of ``PATCH /api/webhooks/<id>``."""

    enabled: bool


def _require_dispatcher() -> WebhookDispatcher:
    if dispatcher is None:
        raise RuntimeError("API used before a dispatcher was configured")
    return dispatcher


@app.errorhandler(ValidationError)
def handle_validation_error(error: ValidationError):
    return jsonify({"error": error.message, "details": error.details}), 400


@app.errorhandler(NotFoundError)
def handle_not_found(error: NotFoundError):
    return jsonify({"error": "Webhook not found", "id": error.subscription_id}), 404


@app.errorhandler(pydantic.ValidationError)
def handle_bad_request(error: pydantic.ValidationError):
    return (
        jsonify(
            {
                "error": "Invalid request body",
                "details": [
                    {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
                    for e in error.errors()
                ],
            }
        ),
        400,
    )


@app.route("/api/webhooks", methods=["POST"])
def register_webhook():
    """Register a webhook."""
    body = RegisterSubscriptionRequest.model_validate(request.get_json(silent=True) or {})
    webhook = _require_dispatcher().register_subscription(
        body.url, body.events, secret=body.secret, enabled=body.enabled
    )
    return jsonify({"webhook": webhook}), 201


@app.route("/api/webhooks", methods=["GET"])
def list_webhooks():
    """List webhooks."""
    return jsonify({"webhooks": _require_dispatcher().list_subscriptions()}), 200


@app.route("/api/webhooks/<subscription_id>", methods=["GET"])
def get_webhook(subscription_id: str):
    return jsonify({"webhook": _require_dispatcher().get_subscription(subscription_id)}), 200


@app.route("/api/webhooks/<subscription_id>", methods=["PATCH"])
def update_webhook(subscription_id: str):
    """Enable or disable a webhook."""
    body = UpdateSubscriptionRequest.model_validate(request.get_json(silent=True) or {})
    webhook = _require_dispatcher().set_subscription_enabled(subscription_id, body.enabled)
    return jsonify({"webhook": webhook}), 200


@app.route("/api/webhooks/<subscription_id>", methods=["DELETE"])
def delete_webhook(subscription_id: str):
    """Delete a webhook."""
    if not _require_dispatcher().delete_subscription(subscription_id):
        return jsonify({"error": "Webhook not found", "id": subscription_id}), 404
    return jsonify({"success": True, "id": subscription_id}), 200


@app.route("/api/events/<event>", methods=["POST"])
def trigger_event(event: str):
    """Trigger an event; the request body is the payload delivered to subscribers."""
    if not request.is_json:
        return jsonify({"error": "Payload must be JSON"}), 400
    payload = request.get_json()
    return jsonify(_require_dispatcher().trigger_event(event, payload)), 202


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok", **_require_dispatcher().status()}), 200


class ServerThread(threading.Thread):
    def __init__(self, app, host, port):
        threading.Thread.__init__(self)
        self.server = make_server(host, port, app)
        self.ctx = app.app_context()
        self.ctx.push()

    def run(self):
        self.server.serve_forever()

    def shutdown(self):
        self.server.shutdown()


def init_api(dispatcher_instance: WebhookDispatcher) -> Flask:
    """Bind the API to a dispatcher and return the Flask app."""
    global dispatcher
    dispatcher = dispatcher_instance
    return app


def start_api_server(host="localhost", port=8080, dispatcher_instance=None):
    """Start the API server in a background thread."""
    global server
    if not dispatcher_instance:
        raise ValueError("WebhookDispatcher instance must be provided")
    init_api(dispatcher_instance)

    server = ServerThread(app, host, port)
    server.daemon = True
    server.start()
    logger.info("api_server_started", host=host, port=port)
    return server


def stop_api_server():
    """Stop the API server."""
    global server
    if server:
        server.shutdown()
        server = None
