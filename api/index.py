from mangum import Mangum
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from scarab.api import create_app
from scarab.config import ScarabSettings

app = create_app(settings=ScarabSettings(), root_path="/api")

handler = Mangum(app)
