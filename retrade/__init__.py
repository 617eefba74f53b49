"""ReTrade second-hand marketplace."""
