from __future__ import annotations

from flask import Flask, Response, jsonify, stream_with_context

from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events", methods=["GET"], endpoint="events_stream")
    def events_stream():
        q = container.events.subscribe()
        return Response(
            stream_with_context(container.events.stream(q)),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok", "timezone": container.clock.timezone})
