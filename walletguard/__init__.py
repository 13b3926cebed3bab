"""
WalletGuard: real-time fraud risk decisioning for wallet transactions.

Rule evaluation, advisor-assisted score fusion, held-funds disposition,
appeals and ground-truth verification metrics.
"""
