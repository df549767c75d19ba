"""Services that connect the engine to the outside world.

The leaderboard store and synchroniser, and the registry that keeps live
sessions and their one-second tickers.
"""
