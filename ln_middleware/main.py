from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger
from starlette import status
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import RedirectResponse

from ln_middleware.bitcoind.service import MempoolFeeOracle
from ln_middleware.lightning.impl.lnd_rest import LnNodeLNDRest
from ln_middleware.lightning.router import router as ln_router
from ln_middleware.lightning.service import LightningService
from ln_middleware.logging import configure_logger

# start server with "uvicorn ln_middleware.main:app"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # setup
    configure_logger()

    node = LnNodeLNDRest()
    app.state.lightning_service = LightningService(node, MempoolFeeOracle())
    logger.info(f"Using {node.get_implementation_name()} node backend")

    yield

    # cleanup
    await app.state.lightning_service.close()


app = FastAPI(lifespan=lifespan)
app.include_router(ln_router)

origins = [
    "http://localhost",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", include_in_schema=False)
def index(req: Request):
    return RedirectResponse(
        req.url_for("swagger_ui_html"), status_code=status.HTTP_307_TEMPORARY_REDIRECT
    )
