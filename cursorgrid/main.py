from fastapi import FastAPI
from contextlib import asynccontextmanager
from cursorgrid.api.screens import router as screens_router
from cursorgrid.clients.authproxy_client import AuthProxyClient
from cursorgrid.services.list_screen import ScreenRegistry

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic: one client, one screen per list source
    app.state.screens = ScreenRegistry(AuthProxyClient())
    yield
    # Shutdown logic
    app.state.screens.close()

app = FastAPI(lifespan=lifespan)

# include routes
app.include_router(screens_router)
