"""Airdrop Radar — エアドロップ発見 & 適格性判定"""

__version__ = "1.2.0"
