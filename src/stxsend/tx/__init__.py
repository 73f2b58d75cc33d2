"""Token transfer builder and bitcoinlib transaction helpers."""
