import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from family_ledger.api.routes import router
from family_ledger.config import get_settings

settings = get_settings()

logger.remove()
logger.add(
    sys.stderr,
    level=settings.log_level,
    format="{time:HH:mm:ss} | {level:<7} | {message}",
)


async def _start_bot(app: FastAPI) -> None:
    if not settings.telegram_bot_token:
        logger.warning("TELEGRAM_BOT_TOKEN not set, running the HTTP API only")
        return

    from family_ledger.bot.handler import build_bot_app

    bot_app = build_bot_app()
    await bot_app.initialize()
    await bot_app.start()
    await bot_app.updater.start_polling(drop_pending_updates=True)
    app.state.bot = bot_app
    logger.info("Telegram bot polling")


async def _stop_bot(app: FastAPI) -> None:
    bot_app = getattr(app.state, "bot", None)
    if bot_app is None:
        return
    await bot_app.updater.stop()
    await bot_app.stop()
    await bot_app.shutdown()
    app.state.bot = None
    logger.info("Telegram bot stopped")


# The ledger file is closed last, after the bot can no longer write to it
@asynccontextmanager
async def lifespan(app: FastAPI):
    await _start_bot(app)
    yield
    await _stop_bot(app)

    from family_ledger.deps import repo

    repo.close()
    logger.info("Ledger closed")


app = FastAPI(title="Family Ledger", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response: Response = await call_next(request)
    logger.info("{} {} -> {}", request.method, request.url.path, response.status_code)
    return response


app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
