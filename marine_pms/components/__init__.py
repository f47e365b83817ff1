"""
Components of the plant simulation.
Contains generators with their governor and AVR, buses, transformers,
loads and the shore connection.
"""

from .avr import AVR, AVRParams
from .bus import Bus
from .generator import Generator
from .governor import Governor, GovernorParams
from .load import HeavyConsumer, LoadNoise
from .shore import ShoreConnection
from .transformer import Transformer

__all__ = ['AVR', 'AVRParams', 'Bus', 'Generator', 'Governor', 'GovernorParams',
           'HeavyConsumer', 'LoadNoise', 'ShoreConnection', 'Transformer']
