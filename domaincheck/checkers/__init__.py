from .resolver import Resolver
from .whois_client import WhoisClient
from .classifier import is_available
from .whois_checker import WhoisChecker, with_retry
from .availability_service import AvailabilityService

__all__ = ['Resolver', 'WhoisClient', 'is_available', 'WhoisChecker', 'with_retry', 'AvailabilityService']
