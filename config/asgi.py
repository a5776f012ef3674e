import os

from channels.routing import ProtocolTypeRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

#  initializing Django first
django_asgi_app = get_asgi_application()

# notifications are pushed to donor_<id> groups on CHANNEL_LAYERS; socket
# consumers live with the client apps
application = ProtocolTypeRouter({
    "http": django_asgi_app,
})
