"""
Unit tests for date of service selection and LLM routing (Step 5).
"""
from datetime import date

from packages.shared.models import (
    DateClassification,
    DateSource,
    ExtractedDate,
    PagePosition,
    PageText,
)
from apps.worker.steps.step05_date_of_service import (
    ROUTING_AMBIGUOUS,
    ROUTING_DATED,
    extract_page_result,
    extract_page_results,
    needs_llm_review,
    select_date_of_service,
)


def _d(
    iso: date,
    classification: DateClassification = DateClassification.UNKNOWN,
    confidence: float = 0.0,
    position: PagePosition = PagePosition.MIDDLE,
    offset: int = 10,
) -> ExtractedDate:
    return ExtractedDate(
        raw=iso.isoformat(),
        iso_date=iso,
        position=position,
        offset=offset,
        classification=classification,
        confidence=confidence,
    )


class TestSelectDateOfService:
    def test_empty(self):
        assert select_date_of_service([]) is None

    def test_confident_labelled_dos(self):
        dates = [
            _d(date(2024, 1, 1)),
            _d(date(2024, 3, 15), DateClassification.DATE_OF_SERVICE, 0.9),
        ]
        result = select_date_of_service(dates)
        assert result.date == date(2024, 3, 15)
        assert result.confident

    def test_weak_dos_not_confident(self):
        result = select_date_of_service([_d(date(2024, 3, 15), DateClassification.DATE_OF_SERVICE, 0.7)])
        assert result.date == date(2024, 3, 15)
        assert not result.confident

    def test_only_dob_and_fax_gives_none(self):
        dates = [
            _d(date(1980, 1, 2), DateClassification.DATE_OF_BIRTH, 0.95),
            _d(date(2024, 5, 1), DateClassification.FAX, 0.8),
        ]
        assert select_date_of_service(dates) is None

    def test_single_header_date_preferred(self):
        dates = [
            _d(date(2024, 2, 1)),
            _d(date(2024, 1, 10), position=PagePosition.TOP, offset=0),
            _d(date(2024, 3, 1), position=PagePosition.BOTTOM),
        ]
        result = select_date_of_service(dates)
        assert result.date == date(2024, 1, 10)
        assert not result.confident

    def test_several_header_dates_fall_back_to_first(self):
        dates = [
            _d(date(2024, 2, 1), position=PagePosition.TOP, offset=0),
            _d(date(2024, 1, 10), position=PagePosition.TOP, offset=5),
        ]
        assert select_date_of_service(dates).date == date(2024, 2, 1)

    def test_dob_skipped_in_fallback(self):
        dates = [
            _d(date(1980, 1, 2), DateClassification.DATE_OF_BIRTH, 0.95, PagePosition.TOP, 0),
            _d(date(2024, 4, 4)),
        ]
        assert select_date_of_service(dates).date == date(2024, 4, 4)


class TestExtractPageResult:
    def test_dob_and_dos(self):
        result = extract_page_result(1, "Patient: Jane\nDOB: 01/02/1980\nDate of Service: 03/15/2024")
        assert result.date_of_service == date(2024, 3, 15)
        assert result.date_source == DateSource.HEURISTIC
        assert len(result.extracted_dates) == 2

    def test_no_dates(self):
        result = extract_page_result(2, "Continued from previous page.")
        assert result.date_of_service is None
        assert result.date_source == DateSource.NONE

    def test_only_dob(self):
        result = extract_page_result(3, "DOB: 01/02/1980")
        assert result.date_of_service is None
        assert result.date_source == DateSource.NONE
        assert len(result.extracted_dates) == 1

    def test_results_sorted_by_page(self):
        pages = [PageText(page_number=3, text="x"), PageText(page_number=1, text="y")]
        assert [r.page_number for r in extract_page_results(pages)] == [1, 3]


class TestNeedsLlmReview:
    def test_no_dates_never_routed(self):
        result = extract_page_result(1, "nothing here")
        assert not needs_llm_review(result, ROUTING_DATED)
        assert not needs_llm_review(result, ROUTING_AMBIGUOUS)

    def test_dated_mode_routes_every_dated_page(self):
        result = extract_page_result(1, "Date of Service: 03/15/2024")
        assert needs_llm_review(result, ROUTING_DATED)

    def test_ambiguous_mode_skips_confident_pages(self):
        confident = extract_page_result(1, "Date of Service: 03/15/2024")
        ambiguous = extract_page_result(2, "Seen 03/15/2024 and 04/01/2024")
        only_dob = extract_page_result(3, "DOB: 01/02/1980")
        assert not needs_llm_review(confident, ROUTING_AMBIGUOUS)
        assert needs_llm_review(ambiguous, ROUTING_AMBIGUOUS)
        assert needs_llm_review(only_dob, ROUTING_AMBIGUOUS)
