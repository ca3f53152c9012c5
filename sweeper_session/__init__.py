"""Game session controller for a remotely hosted Minesweeper engine."""
