from .lobby import LobbyHandler
from .board import BoardHandler
from .play import PlayHandler
