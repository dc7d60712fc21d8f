from wikidist.utils.monitoring import CrawlerMonitor


def test_counters_and_gauges(monitor):
    monitor.record_request("200")
    monitor.record_request("200")
    monitor.record_request("hard_failure")
    monitor.record_fetched()
    monitor.record_registered()
    monitor.record_new_urls(5)
    monitor.record_new_urls(0)
    monitor.update_queue_lengths(12, 3)

    assert monitor.get_value("wikidist_requests_total", {"state": "200"}) == 2
    assert monitor.get_value("wikidist_requests_total", {"state": "hard_failure"}) == 1
    assert monitor.get_summary() == {
        "articles_fetched": 1,
        "articles_registered": 1,
        "new_urls": 5,
        "queue_length": 12,
        "results_length": 3,
    }


def test_monitors_do_not_share_registries():
    first = CrawlerMonitor()
    second = CrawlerMonitor()

    first.record_fetched()

    assert first.get_value("wikidist_articles_fetched_total") == 1
    assert second.get_value("wikidist_articles_fetched_total") == 0


def test_server_disabled_by_default(monitor):
    # no port is bound when the server is disabled
    monitor.start_server()
    assert not monitor.enable_server
