"""Personal trading risk desk: position sizing, trade validation and performance analytics."""
