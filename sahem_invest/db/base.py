"""
Database model registry.

Importing this module registers every table with SQLModel's metadata, which
``create_all()`` needs.
"""

from sahem_invest.models.deal import Deal  # noqa: F401
from sahem_invest.models.distribution_request import ProfitDistributionRequest  # noqa: F401
from sahem_invest.models.investment import Investment  # noqa: F401
from sahem_invest.models.investor import Investor  # noqa: F401
from sahem_invest.models.profit_distribution import ProfitDistribution  # noqa: F401
from sahem_invest.models.transaction import Transaction  # noqa: F401
