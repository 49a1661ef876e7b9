import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import RedirectResponse

from inkpages.exceptions import LoginRequired
from inkpages.routers import admin, auth, images, posts, write
from inkpages.security import require_writer
from inkpages.settings import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Ink & Pages API", description=settings.SITE_DESCRIPTION)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    logger.info(f"Redirecting anonymous request for {request.url.path} to /login")
    return RedirectResponse("/login", status_code=303)


app.include_router(posts.router)
app.include_router(auth.router)
app.include_router(images.router)
app.include_router(admin.router, dependencies=[Depends(require_writer)])
app.include_router(write.router, dependencies=[Depends(require_writer)])
