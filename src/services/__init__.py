"""Services for the Reader backend and client-side statistics"""
from .reader_api import ReaderApiClient
from .stats import StatisticsService

__all__ = ['ReaderApiClient', 'StatisticsService']
