from typing import Annotated, cast

from fastapi import Depends, Request

from refkeeper.app import App
from refkeeper.config import Config
from refkeeper.core.modules.access.models import Identity


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_identity(
    request: Request,
    app: Annotated[App, Depends(get_app)],
    config: Annotated[Config, Depends(get_config)],
) -> Identity:
    """Resolve the caller from the uid header set by the authenticating gateway."""
    return app.identify(request.headers.get(config.identity_header))


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
IdentityDep = Annotated[Identity, Depends(get_identity)]
