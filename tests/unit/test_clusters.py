"""
Unit tests for clustering and chronology assembly (Step 8).
"""
from datetime import date

from packages.shared.models import DateSource, PageResult
from apps.worker.steps.step08_clusters import build_chronology, build_clusters, cluster_id


def _page(n: int, dos: date | None = None, source: DateSource | None = None, doc_type: str | None = None) -> PageResult:
    if source is None:
        source = DateSource.HEURISTIC if dos else DateSource.NONE
    return PageResult(page_number=n, date_of_service=dos, date_source=source, document_type=doc_type)


class TestBuildClusters:
    def test_sorted_by_date(self):
        pages = [
            _page(1, date(2024, 3, 1)),
            _page(2, date(2024, 1, 1)),
            _page(3, date(2024, 3, 1)),
        ]
        clusters = build_clusters(pages)
        assert [c.date_of_service for c in clusters] == [date(2024, 1, 1), date(2024, 3, 1)]
        assert clusters[1].pages == [1, 3]
        assert clusters[1].primary_page == 1

    def test_undated_pages_skipped(self):
        clusters = build_clusters([_page(1), _page(2, date(2024, 1, 1))])
        assert len(clusters) == 1
        assert clusters[0].pages == [2]

    def test_cluster_id_and_document_type_from_primary(self):
        clusters = build_clusters([
            _page(4, date(2024, 2, 2), doc_type="Radiology Report"),
            _page(5, date(2024, 2, 2), doc_type="Other"),
        ])
        assert clusters[0].id == cluster_id(date(2024, 2, 2), 4) == "cluster-2024-02-02-4"
        assert clusters[0].document_type == "Radiology Report"

    def test_empty(self):
        assert build_clusters([]) == []


class TestBuildChronology:
    def test_inherits_then_clusters(self):
        pages = [
            _page(3, date(2024, 2, 20)),
            _page(1, date(2024, 1, 15)),
            _page(2),
            _page(4),
        ]
        result = build_chronology(pages)
        assert [p.page_number for p in result.pages] == [1, 2, 3, 4]
        assert [(c.date_of_service, c.pages) for c in result.clusters] == [
            (date(2024, 1, 15), [1, 2]),
            (date(2024, 2, 20), [3, 4]),
        ]
        assert result.undated_pages == []
        assert result.stats.total_pages == 4
        assert result.stats.pages_with_dos == 2
        assert result.stats.pages_inherited == 2

    def test_undated_before_first_date(self):
        result = build_chronology([_page(1), _page(2, date(2024, 1, 1))])
        assert result.undated_pages == [1]
        assert result.clusters[0].pages == [2]

    def test_llm_pages_counted(self):
        result = build_chronology([_page(1, date(2024, 1, 1), DateSource.LLM), _page(2)])
        assert result.stats.llm_classified == 1
