from .subscribers import Subscribers as Subscribers
