"""
SQLAlchemy database models for the satellite catalog.
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from .satellite import Satellite
from .tle import TLE
from .transmitter import Transmitter

__all__ = ['db', 'Satellite', 'TLE', 'Transmitter']
