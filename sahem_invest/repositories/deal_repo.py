"""
Deal repository: data access for the ``deals`` table.

Generic CRUD from :class:`BaseRepository` covers every deal query;
``current_funding`` is raised by :class:`InvestmentRepository` in the
same commit as the investment insert.
"""

from sahem_invest.models.deal import Deal
from sahem_invest.repositories.base import BaseRepository


class DealRepository(BaseRepository[Deal]):
    """Concrete repository for :class:`Deal` entities."""

    pass
