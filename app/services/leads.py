"""
Lead sources.

The scoring engine reads leads through the LeadSource contract only;
persistence lives outside the engine.
"""

import logging
from typing import Dict, Iterable, Optional, Protocol

from ..models import LeadRecord

logger = logging.getLogger(__name__)


class LeadSource(Protocol):
    async def read(self, lead_id: str) -> Optional[LeadRecord]:
        ...


class InMemoryLeadSource:
    """Dictionary-backed lead source, populated through the API or tests."""

    def __init__(self, leads: Iterable[LeadRecord] = ()):
        self._leads: Dict[str, LeadRecord] = {lead.id: lead for lead in leads}

    async def read(self, lead_id: str) -> Optional[LeadRecord]:
        return self._leads.get(lead_id)

    def add(self, lead: LeadRecord) -> None:
        if lead.id in self._leads:
            logger.debug(f"Replacing lead {lead.id}")
        self._leads[lead.id] = lead

    def __len__(self) -> int:
        return len(self._leads)
