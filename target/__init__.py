"""Hardware targets implementing rovcore.board.Board."""
