#!/usr/bin/env python3
"""FamilyReel - a family video library with parental controls."""

import argparse
import asyncio
import logging
import os
import signal
from typing import Optional

import uvicorn

from access.models import ParentalControls, ROLE_PARENT
from bot.notifier import LimitNotifier
from config import load_config, Config
from data.controls_store import ControlsStore
from data.video_store import VideoStore
from player.engine import make_session_factory
from player.fallback import FallbackResolver
from player.providers import ProviderClient
from web.app import add_middleware, create_app, resolve_session_secret
from web.cache import init_app_state
from web.helpers import enforce_access
from youtube.extractor import VideoMetadataExtractor, configure_timeout

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("familyreel")

ACCESS_CHECK_INTERVAL = 30  # seconds


def default_controls(config: Config) -> ParentalControls:
    wl = config.watch_limits
    try:
        return ParentalControls(
            is_enabled=wl.enabled,
            daily_time_limit_minutes=wl.daily_limit_minutes,
            schedule_start=wl.schedule_start,
            schedule_end=wl.schedule_end,
        )
    except ValueError as e:
        logger.error("Invalid watch_limits in config (%s), using built-in defaults", e)
        return ParentalControls()


class FamilyReel:
    """Main orchestrator - runs FastAPI, the access loop and the notifier."""

    def __init__(self, config: Config):
        self.config = config
        self.app = create_app()
        self.video_store: Optional[VideoStore] = None
        self.providers: Optional[ProviderClient] = None
        self.notifier: Optional[LimitNotifier] = None
        self.server: Optional[uvicorn.Server] = None
        self.running = False

    def _bootstrap_profiles(self) -> None:
        """Ensure a parent profile exists. Auto-creates 'parent' on first run."""
        if self.video_store.get_profiles():
            return
        pin = self.config.web.pin
        self.video_store.create_profile("parent", "Parent", role=ROLE_PARENT, pin=pin)
        logger.info("Created parent profile (PIN: %s)", "set" if pin else "none")

    async def setup(self) -> None:
        """Initialize all components."""
        db_path = self.config.database.path
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self.video_store = VideoStore(db_path=db_path)
        logger.info("Database initialized")
        self._bootstrap_profiles()

        pb = self.config.playback
        configure_timeout(pb.ydl_timeout)
        self.providers = ProviderClient(timeout=pb.provider_timeout)
        resolver = FallbackResolver(self.providers, pb.tier_a_instances, pb.tier_b_instances)

        tg = self.config.telegram
        if tg.bot_token and tg.admin_chat_id:
            self.notifier = LimitNotifier(tg.bot_token, tg.admin_chat_id,
                                          tz_name=self.config.watch_limits.timezone)
            logger.info("Telegram notifier initialized")

        state = self.app.state
        state.video_store = self.video_store
        state.controls_store = ControlsStore(self.video_store, default_controls(self.config))
        state.session_factory = make_session_factory(
            resolver, api_load_timeout=pb.api_load_timeout, origin=self.config.web.base_url,
        )
        state.extractor = VideoMetadataExtractor()
        state.notifier = self.notifier
        state.web_config = self.config.web
        state.wl_config = self.config.watch_limits
        init_app_state(state)

        secret = resolve_session_secret(self.video_store, self.config.web.session_secret)
        add_middleware(self.app, secret, mirror_pages=pb.tier_b_instances)
        logger.info("Web app initialized")

    async def run(self) -> None:
        """Start everything."""
        self.running = True
        await self.setup()

        config = uvicorn.Config(
            self.app,
            host=self.config.web.host,
            port=self.config.web.port,
            log_level="info",
        )
        self.server = uvicorn.Server(config)

        access_task = asyncio.create_task(self._access_loop())

        stats = self.video_store.get_stats()
        logger.info(
            f"FamilyReel started - {stats['videos']} videos ({stats['unseen']} unseen), "
            f"{stats['profiles']} profiles"
        )

        try:
            await self.server.serve()
        except asyncio.CancelledError:
            logger.info("Server cancelled")
        finally:
            access_task.cancel()

    async def _access_loop(self) -> None:
        """Periodically re-check the gate so schedule boundaries stop playback."""
        while self.running:
            await asyncio.sleep(ACCESS_CHECK_INTERVAL)
            try:
                closed = enforce_access(self.app.state)
                if closed:
                    logger.info(f"Access check closed {closed} session(s)")
            except Exception as e:
                logger.error(f"Access check error: {e}")

    async def stop(self) -> None:
        """Stop all components."""
        self.running = False
        registry = getattr(self.app.state, "registry", None)
        if registry is not None:
            registry.close_all()
        if self.server:
            self.server.should_exit = True
        if self.providers:
            await self.providers.aclose()
        if self.notifier:
            await self.notifier.aclose()
        if self.video_store:
            self.video_store.close()
        logger.info("FamilyReel stopped")


async def main() -> None:
    parser = argparse.ArgumentParser(description="FamilyReel")
    parser.add_argument("-c", "--config", help="Path to config file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    app = FamilyReel(config)

    loop = asyncio.get_running_loop()

    def signal_handler():
        asyncio.create_task(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            signal.signal(sig, lambda s, f: signal_handler())

    try:
        await app.run()
    except KeyboardInterrupt:
        await app.stop()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
