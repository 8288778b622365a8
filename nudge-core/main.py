import argparse
import json
import logging
import random
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

from dotenv import load_dotenv

from config import AppConfig
from memory import PostgresChatStore, RedisKeyValueStore, initialize_database
from notifications import PushNotificationService
from nudges import (
    EligibilitySelector,
    MessageInserter,
    NotificationDispatcher,
    NudgeContentGenerator,
    NudgePrompts,
    NudgeRateLimiter,
    NudgeTick,
    RunLock,
)
from utils.llm_factory import build_llm
from utils.metrics import NudgeMetrics
from utils.scheduler import NudgeScheduler

logger = logging.getLogger("nudge-main")


class HealthHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(b'{"status": "ok"}')

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        return


def start_health_server(port: int) -> None:
    server = HTTPServer(("0.0.0.0", port), HealthHandler)
    server.serve_forever()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_kv_store(config: AppConfig) -> RedisKeyValueStore:
    return RedisKeyValueStore(
        host=config.redis_host,
        port=config.redis_port,
        password=config.redis_password,
    )


def build_nudge_tick(config: AppConfig, kv_store: RedisKeyValueStore) -> NudgeTick:
    chat_store = PostgresChatStore(config)
    push_service = PushNotificationService(
        config,
        token_lookup=chat_store.get_push_tokens,
        token_revoker=chat_store.deactivate_push_token,
    )
    return NudgeTick(
        config=config,
        lock=RunLock(kv_store),
        selector=EligibilitySelector(chat_store),
        rate_limiter=NudgeRateLimiter(kv_store),
        generator=NudgeContentGenerator(chat_store, build_llm(config), NudgePrompts.load()),
        inserter=MessageInserter(chat_store),
        dispatcher=NotificationDispatcher(push_service, config.push_enabled),
        rng=random.Random(),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat re-engagement nudge worker")
    parser.add_argument("--once", action="store_true", help="run a single tick and print its result")
    args = parser.parse_args()

    load_dotenv()
    config = AppConfig()
    configure_logging(config.log_level)

    try:
        initialize_database(config)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database initialization failed; continuing against existing schema: %s", exc)

    kv_store = build_kv_store(config)
    tick = build_nudge_tick(config, kv_store)
    metrics = NudgeMetrics(kv_store.client)
    scheduler = NudgeScheduler(
        tick,
        interval_seconds=config.nudge_tick_interval_seconds,
        timezone=config.system_timezone,
        metrics=metrics,
    )

    if args.once:
        print(json.dumps(scheduler.run_once().as_dict()))
        return

    logger.info(
        "Starting nudge worker (enabled=%s, push=%s, interval=%ss)",
        config.nudge_enabled,
        config.push_enabled,
        config.nudge_tick_interval_seconds,
    )
    health_thread = threading.Thread(target=start_health_server, args=(config.health_port,), daemon=True)
    health_thread.start()
    scheduler.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
