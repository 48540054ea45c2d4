"""
memesim - memecoin strategy backtesting and position management.

Replays candle series through one of the bot strategies (volume spike,
trend momentum, dip recovery), manages simulated positions and reports
a day-by-day portfolio series with trade statistics.
"""

__version__ = "0.3.0"
