from mangum import Mangum

from wager_ledger.api import create_app
from wager_ledger.config import configure_logging


configure_logging()
app = create_app(root_path="/api")

handler = Mangum(app)
