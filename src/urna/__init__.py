"""Cliente de sincronización y votación para el contrato electoral Urna.

English:
    Election state synchronization and ballot submission client.
"""

__version__ = "0.1.0"
