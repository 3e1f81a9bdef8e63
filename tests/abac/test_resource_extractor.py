from __future__ import annotations

from dataclasses import dataclass

import pytest

from abac.context.resources import ResourceAttributeExtractor


@dataclass
class Loan:
    loan_id: str
    RequestedAmount: int
    Borrower: dict


class Invoice:
    def __init__(self):
        self.Amount = 120
        self.Status = "Open"
        self._secret = "hidden"


class SlotsDocument:
    __slots__ = ("Title", "_draft")

    def __init__(self):
        self.Title = "Draft"
        self._draft = True


class PriorityLoan(Loan):
    pass


@dataclass
class AuditedLoan:
    LoanId: str
    _reviewer_notes: str = ""


class TestExtraction:
    def test_none_gives_empty_map(self):
        assert len(ResourceAttributeExtractor().extract(None)) == 0

    def test_dataclass_fields(self):
        loan = Loan("L-1", 40000, {"name": "Bob"})
        attrs = ResourceAttributeExtractor().extract(loan)
        assert attrs["requestedamount"] == 40000
        assert attrs["Borrower"] == {"name": "Bob"}
        assert set(attrs) == {"loan_id", "RequestedAmount", "Borrower"}

    def test_private_dataclass_fields_skipped(self):
        attrs = ResourceAttributeExtractor().extract(AuditedLoan("L-2", "internal only"))
        assert attrs.to_dict() == {"LoanId": "L-2"}

    def test_mapping_copied(self):
        attrs = ResourceAttributeExtractor().extract({"Region": "EU", 7: "seven"})
        assert attrs["region"] == "EU"
        assert attrs["7"] == "seven"

    def test_plain_object_public_attributes_only(self):
        attrs = ResourceAttributeExtractor().extract(Invoice())
        assert attrs.to_dict() == {"Amount": 120, "Status": "Open"}

    def test_slots_object(self):
        attrs = ResourceAttributeExtractor().extract(SlotsDocument())
        assert attrs.to_dict() == {"Title": "Draft"}

    def test_scalar_resource_gives_empty_map(self):
        assert len(ResourceAttributeExtractor().extract("Loan")) == 0


class TestRegisteredMappers:
    def test_mapper_takes_precedence(self):
        extractor = ResourceAttributeExtractor()
        extractor.register(Loan, lambda loan: [("Amount", loan.RequestedAmount)])
        attrs = extractor.extract(Loan("L-1", 5, {}))
        assert attrs.to_dict() == {"Amount": 5}

    def test_mapper_applies_to_subclasses(self):
        extractor = ResourceAttributeExtractor({Loan: lambda loan: {"Id": loan.loan_id}})
        attrs = extractor.extract(PriorityLoan("L-9", 1, {}))
        assert attrs.to_dict() == {"Id": "L-9"}

    def test_duplicate_mapper_rejected(self):
        extractor = ResourceAttributeExtractor({Loan: dict})
        with pytest.raises(ValueError, match="already registered"):
            extractor.register(Loan, dict)
