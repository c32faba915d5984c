import asyncio
import json
import time
from typing import Optional

import numpy as np
from aiohttp import WSMsgType, web

from quantflow.config import ScannerConfig, ServerConfig
from quantflow.core.analyzer import SignalAnalyzer
from quantflow.errors import ValidationError
from quantflow.market.simulator import MarketSimulator
from quantflow.trading.feedback import FeedbackStore
from quantflow.trading.scanner import ScanSession, Scanner, resolve_mutes
from quantflow.utils.logger import log


class SignalServer:
    """Wires the market simulator, feedback store and scanner to the dashboard:
    a websocket for scan requests and plain HTTP for feedback and health."""

    def __init__(self, cfg: ServerConfig,
                 market: Optional[MarketSimulator] = None,
                 feedback: Optional[FeedbackStore] = None,
                 analyzer: Optional[SignalAnalyzer] = None):
        self.cfg = cfg
        self.feedback = feedback if feedback is not None else FeedbackStore.open(cfg.feedback_path)
        self.market = market if market is not None else MarketSimulator(
            history_size=cfg.history_size,
            max_candles=cfg.max_candles,
            seed=cfg.seed,
        )
        self.analyzer = analyzer if analyzer is not None else SignalAnalyzer(
            self.feedback,
            rng=np.random.default_rng(cfg.seed),
            loss_penalty=cfg.loss_penalty,
            similarity_threshold=cfg.similarity_threshold,
            recent_window=cfg.recent_feedback_window,
        )
        self.scanner = Scanner(self.market, self.analyzer, min_winrate=cfg.min_winrate)
        self._tick_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    def handle_message(self, session: ScanSession, raw: str) -> dict:
        """One websocket request in, one reply out. Bad input gets an ERROR reply."""
        try:
            msg = json.loads(raw)
        except ValueError:
            return {"type": "ERROR", "error": "invalid JSON"}
        if not isinstance(msg, dict):
            return {"type": "ERROR", "error": "message must be an object"}

        kind = msg.get("type")
        try:
            if kind == "SCAN_MARKET":
                config = ScannerConfig.from_dict(msg.get("config"))
                muted = self._parse_muted(msg.get("mutedAssets"))
                result = self.scanner.scan(config, muted, session)
                return {"type": "SCAN_RESULT", "data": result.to_dict()}

            if kind == "MUTE_ASSET":
                asset = msg.get("asset")
                if not asset or not isinstance(asset, str):
                    raise ValidationError("asset is required")
                until = int(time.time() * 1000) + self.cfg.mute_seconds * 1000
                session.mute(asset, until)
                log.info("🔇 Muted %s for %ds", asset, self.cfg.mute_seconds)
                return {"type": "MUTED", "data": {"asset": asset, "until": until}}
        except ValidationError as e:
            log.warning("Rejected %s message: %s", kind, e)
            return {"type": "ERROR", "error": str(e)}

        return {"type": "ERROR", "error": f"unknown message type: {kind!r}"}

    @staticmethod
    def _parse_muted(raw):
        if raw is None:
            return None
        if not isinstance(raw, (list, dict)):
            raise ValidationError("mutedAssets must be a list or an object")
        try:
            resolve_mutes(raw, 0)
        except (TypeError, ValueError):
            raise ValidationError("mutedAssets expiries must be epoch milliseconds")
        return raw

    # ------------------------------------------------------------------
    async def _handle_ws(self, request: web.Request):
        ws = web.WebSocketResponse()
        if not ws.can_prepare(request).ok:
            return web.json_response({"status": "ok", "hint": "connect with a websocket"})
        await ws.prepare(request)

        session = ScanSession()
        log.info("🔌 Client connected (%s)", request.remote)
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await ws.send_json(self.handle_message(session, msg.data))
                elif msg.type == WSMsgType.ERROR:
                    log.warning("Websocket error: %s", ws.exception())
        finally:
            log.info("🔌 Client disconnected (%s)", request.remote)
        return ws

    async def _handle_feedback(self, request: web.Request):
        try:
            payload = await request.json()
        except ValueError:
            return web.json_response({"error": "Invalid feedback"}, status=400)
        try:
            self.feedback.submit(payload)
        except ValidationError as e:
            return web.json_response({"error": str(e)}, status=400)
        return web.json_response({"status": "ok", "historySize": len(self.feedback)})

    async def _handle_health(self, request: web.Request):
        tally = self.feedback.tally()
        return web.json_response({
            "status": "ok",
            "assets": len(self.market.instruments),
            "historySize": len(self.feedback),
            "wins": tally.wins,
            "losses": tally.losses,
            "summary": tally.summary(),
        })

    # ------------------------------------------------------------------
    async def _tick_loop(self):
        """Move the synthetic market every `tick_interval` seconds."""
        while True:
            await asyncio.sleep(self.cfg.tick_interval)
            try:
                self.market.tick()
            except Exception as e:
                log.error("Market tick failed: %s", e)

    async def _on_startup(self, app: web.Application):
        if self.cfg.tick_interval > 0:
            self._tick_task = asyncio.create_task(self._tick_loop())

    async def _on_cleanup(self, app: web.Application):
        if self._tick_task is not None:
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
            self._tick_task = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._handle_ws)
        app.router.add_get("/ws", self._handle_ws)
        app.router.add_post("/api/feedback", self._handle_feedback)
        app.router.add_get("/api/health", self._handle_health)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    def run(self):
        log.info("═" * 60)
        log.info("  📡 QuantFlow signal scanner")
        log.info("  Instruments: %d  |  Min winrate: %.0f%%",
                 len(self.market.instruments), self.cfg.min_winrate)
        log.info("  Feedback history: %d records (%s)  |  %s",
                 len(self.feedback), self.cfg.feedback_path, self.feedback.tally().summary())
        log.info("  Listening on http://%s:%d", self.cfg.host, self.cfg.port)
        log.info("═" * 60)
        web.run_app(self.build_app(), host=self.cfg.host, port=self.cfg.port, print=None)
