from .games import Game
