from mangum import Mangum

from todo_app.config import get_settings
from todo_app.logging_config import configure_logging
from todo_app.main import create_app

settings = get_settings()
configure_logging(settings.log_level)

app = create_app(settings=settings)

# Mangum would run the lifespan on every invocation, so it stays off: the
# first request of a container builds the pool and runs the migrations, and
# later invocations on the same event loop reuse it.
handler = Mangum(app, lifespan="off")
