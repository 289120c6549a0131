"""
LeadBoard: the lead list of one dashboard session.

Leads live only here: they are never written to the database. A new
search replaces the list; toggling flips a lead between "new" and "saved".
The `searching` flag keeps one search in flight per session, so a slow
earlier search cannot overwrite the results of a later one.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from models import BusinessLead


@dataclass
class LeadBoard:
    leads: list[BusinessLead] = field(default_factory=list)
    searching: bool = False
    has_searched: bool = False
    last_error: str | None = None

    def replace(self, leads: list[BusinessLead]) -> None:
        self.leads = list(leads)
        self.has_searched = True
        self.last_error = None

    def fail(self, message: str) -> None:
        self.leads = []
        self.has_searched = True
        self.last_error = message

    def toggle_save(self, lead_id: str) -> BusinessLead:
        for i, lead in enumerate(self.leads):
            if lead.id == lead_id:
                status = "saved" if lead.status == "new" else "new"
                self.leads[i] = lead.model_copy(update={"status": status})
                return self.leads[i]
        raise KeyError(lead_id)

    @property
    def saved_count(self) -> int:
        return sum(1 for lead in self.leads if lead.status == "saved")

    def to_dict(self) -> dict:
        return {
            "leads": [lead.model_dump(mode="json", by_alias=True) for lead in self.leads],
            "savedCount": self.saved_count,
            "searching": self.searching,
            "hasSearched": self.has_searched,
            "error": self.last_error,
        }
