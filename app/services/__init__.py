from .game_service import GameService
from .board_service import BoardService
from .bot_service import decide_bot_move
from .line_service import count_completed_lines, has_won
