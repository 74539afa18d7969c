# pushrelay/outbound/__init__.py
from .gateway import PushTransport, GatewayResponse
from .dry_run import DryRunTransport
from .fcm import FcmHttpTransport
from .settings import PushGatewaySettings, load_push_settings
