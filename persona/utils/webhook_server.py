"""Webhook server: health, analytics snapshot and the Meta WhatsApp webhook."""

import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
import uvicorn

logger = logging.getLogger(__name__)


class WebhookServer:
    """FastAPI app served by uvicorn alongside the pipeline worker."""

    def __init__(self, analytics, channel=None, host: str = "0.0.0.0", port: int = 18789):
        self.analytics = analytics
        self.channel = channel
        self.host = host
        self.port = port
        self.app = self.build_app()
        logger.info(f"Webhook server initialized on {host}:{port}")

    def build_app(self) -> FastAPI:
        app = FastAPI(title="Persona Bot")

        # ── Health check ──────────────────────────────────────────────
        @app.get("/health")
        async def health():
            return {"status": "healthy", "timestamp": datetime.now().isoformat()}

        # ── Analytics (read-only) ─────────────────────────────────────
        @app.get("/api/analytics")
        async def api_analytics():
            return JSONResponse(self.analytics.snapshot())

        # ── Meta WhatsApp webhook ─────────────────────────────────────
        @app.get("/whatsapp/webhook")
        async def whatsapp_verify(request: Request):
            if not self.channel:
                return Response(status_code=404)
            challenge = self.channel.handle_verification(dict(request.query_params))
            if challenge is None:
                return Response(status_code=403)
            return PlainTextResponse(challenge)

        @app.post("/whatsapp/webhook")
        async def whatsapp_webhook(request: Request):
            if not self.channel:
                return {"ok": False, "error": "WhatsApp channel not configured"}
            try:
                body = await request.json()
                envelopes = await self.channel.handle_webhook(body)
                return {"ok": True, "queued": len(envelopes)}
            except Exception as e:
                logger.error(f"Error in Meta WhatsApp webhook: {e}", exc_info=True)
                # Meta retries non-200 responses; the payload is dropped instead
                return {"ok": False}

        return app

    async def start(self):
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="info",
        )
        server = uvicorn.Server(config)

        logger.info(f"Starting webhook server on http://{self.host}:{self.port}")
        logger.info(f"Meta WhatsApp webhook: http://{self.host}:{self.port}/whatsapp/webhook")
        await server.serve()
