import pytest

from app.services.paginator import Paginator, build_paginator


@pytest.mark.parametrize("page_count", [1, 2, 3])
def test_full_window_when_links_cover_all_pages(page_count):
    paginator = build_paginator(0, 10, page_count * 10, direct_links_count=3)
    assert paginator.page_count == page_count
    assert paginator.direct_links_from == paginator.first_page == 0
    assert paginator.direct_links_to == page_count
    assert list(paginator.direct_links) == list(range(page_count))


def test_no_rows_gives_empty_window():
    paginator = build_paginator(0, 10, 0)
    assert paginator.page_count == 0
    assert paginator.page == 0
    assert paginator.direct_links_from == 0
    assert paginator.direct_links_to == 0
    assert list(paginator.direct_links) == []
    assert paginator.is_first and paginator.is_last


@pytest.mark.parametrize("page", range(0, 10))
def test_partial_window_is_direct_links_count_wide_or_clamped(page):
    paginator = build_paginator(page, 10, 100, direct_links_count=3)
    width = paginator.direct_links_to - paginator.direct_links_from
    if paginator.direct_links_from + 3 > paginator.last_page + 1:
        assert paginator.direct_links_to == paginator.last_page + 1
        assert width < 3
    else:
        assert width == 3
    assert paginator.page in paginator.direct_links


def test_window_centres_on_current_page():
    paginator = build_paginator(5, 10, 100, direct_links_count=3)
    assert (paginator.direct_links_from, paginator.direct_links_to) == (4, 7)


def test_window_clamped_at_first_page():
    paginator = build_paginator(0, 10, 100, direct_links_count=3)
    assert (paginator.direct_links_from, paginator.direct_links_to) == (0, 3)


def test_window_clamped_at_last_page():
    # 10 pages (0..9); page 10 is past the end and clamps to 9.
    paginator = build_paginator(10, 10, 100, direct_links_count=3)
    assert paginator.page == 9
    assert paginator.direct_links_from == 8
    assert paginator.direct_links_to == 10


def test_requested_page_is_clamped_into_bounds():
    assert build_paginator(-4, 10, 35).page == 0
    assert build_paginator(99, 10, 35).page == 3


def test_offset_and_length_follow_clamped_page():
    paginator = build_paginator(3, 10, 35)
    assert paginator.offset == 30
    assert paginator.length == 5
    assert paginator.is_last
    assert not paginator.is_first


def test_items_per_page_is_at_least_one():
    paginator = Paginator(requested_page=0, items_per_page=0, item_count=5)
    assert paginator.items_per_page == 1
    assert paginator.page_count == 5


def test_base_offsets_page_numbers():
    paginator = Paginator(requested_page=1, items_per_page=10, item_count=25, base=1)
    assert paginator.first_page == 1
    assert paginator.last_page == 3
    assert paginator.direct_links_to == 4
    assert list(paginator.direct_links) == [1, 2, 3]
