"""Tests for mail alias aggregation and the last-stage alias resources."""

import pytest

from sysconverge.errors import AggregationError
from sysconverge.forge import ConvergenceExecutor, MailAliasAggregator, flatten_recipients
from sysconverge.models import AccountContribution, ResourceStatus
from sysconverge.resources import MailAliasResource, NotificationPackagesResource


def contribution(account, email="", state="present"):
    return AccountContribution(account_id=account, email=email, state=state)


def converge_aliases(adapter, *contributions, packages=("logwatch",)):
    aliases = MailAliasResource(contributions=list(contributions))
    notify = NotificationPackagesResource.following(aliases, list(packages))
    return ConvergenceExecutor().apply([aliases, notify], adapter)


# Pure aggregation


def test_present_account_joins_root_and_owns_alias():
    new = MailAliasAggregator().aggregate(
        [contribution("alice", "a@x.org")], {"root": ["bob"]}
    )
    assert new == {"root": ["bob", "alice"], "alice": ["a@x.org"]}


def test_present_without_email_has_empty_alias():
    new = MailAliasAggregator().aggregate([contribution("carol")], {})
    assert new == {"root": ["carol"], "carol": []}


def test_absent_removes_only_exact_identifier():
    """Entries sharing a substring, or duplicates of others, are untouched."""
    current = {"root": ["alice2", "bob", "alice", "malice", "alice"], "alice": ["a@x.org"]}

    new = MailAliasAggregator().aggregate([contribution("alice", state="absent")], current)

    assert new["root"] == ["alice2", "bob", "malice"]
    assert new["alice"] == []


def test_nested_and_comma_joined_root_is_flattened():
    current = {"root": [["bob, carol"], "bob", " dave "]}
    new = MailAliasAggregator().aggregate([contribution("carol", state="absent")], current)
    assert new["root"] == ["bob", "dave"]


def test_present_twice_then_absent_removes_once():
    aggregator = MailAliasAggregator()
    state = {"root": ["bob"]}
    for _ in range(2):
        state = {**state, **aggregator.aggregate([contribution("alice", "a@x.org")], state)}
    assert state["root"] == ["bob", "alice"]

    state = {**state, **aggregator.aggregate([contribution("alice", state="absent")], state)}
    assert state["root"] == ["bob"]


def test_conflicting_contributions_rejected():
    with pytest.raises(AggregationError):
        MailAliasAggregator().aggregate(
            [contribution("alice", "a@x.org"), contribution("alice", state="absent")], {}
        )


def test_identical_duplicate_contributions_merge():
    new = MailAliasAggregator().aggregate(
        [contribution("alice", "a@x.org"), contribution("alice", "a@x.org")], {}
    )
    assert new["root"] == ["alice"]


@pytest.mark.parametrize("email", ["a@x.org, evil@y.org", "a b@x.org", "a@b@c", "x:y"])
def test_malformed_email_rejected(email):
    with pytest.raises(AggregationError):
        MailAliasAggregator().aggregate([contribution("alice", email)], {})


def test_account_named_like_root_rejected():
    with pytest.raises(AggregationError):
        MailAliasAggregator().aggregate([contribution("root", "r@x.org")], {})


def test_flatten_recipients_dedups_in_order():
    assert flatten_recipients(["b", ("a", ["b, c"]), None, ""]) == ["b", "a", "c"]


def test_has_recipients():
    assert MailAliasAggregator.has_recipients([contribution("a", "a@x.org")])
    assert not MailAliasAggregator.has_recipients([contribution("a")])
    assert not MailAliasAggregator.has_recipients([contribution("a", "a@x.org", "absent")])


# Alias resources through the executor


def test_alias_round_trip(adapter):
    """Present then absent keeps bob, removes alice; absent twice is a no-op."""
    adapter.aliases["root"] = ["bob"]

    converge_aliases(adapter, contribution("alice", "a@x.org"))
    assert adapter.aliases == {"root": ["bob", "alice"], "alice": ["a@x.org"]}

    report = converge_aliases(adapter, contribution("alice", "a@x.org", "absent"))
    assert report.status_of("mail_alias:aliases") == ResourceStatus.APPLIED
    assert adapter.aliases == {"root": ["bob"]}

    writes_before = [c for c in adapter.calls if c[0] == "write_alias_state"]
    report = converge_aliases(adapter, contribution("alice", "a@x.org", "absent"))
    assert report.status_of("mail_alias:aliases") == ResourceStatus.SKIPPED
    assert [c for c in adapter.calls if c[0] == "write_alias_state"] == writes_before


def test_per_account_alias_is_replaced(adapter):
    """Two successive present runs with different emails keep only the latest."""
    converge_aliases(adapter, contribution("alice", "old@x.org"))
    converge_aliases(adapter, contribution("alice", "new@x.org"))

    assert adapter.aliases["alice"] == ["new@x.org"]
    assert adapter.aliases["root"] == ["alice"]


def test_only_changed_aliases_are_written(adapter):
    adapter.aliases["root"] = ["alice"]
    adapter.aliases["alice"] = ["a@x.org"]

    converge_aliases(adapter, contribution("alice", "a@x.org"), contribution("bob", "b@x.org"))

    written = [c[1] for c in adapter.calls if c[0] == "write_alias_state"]
    assert written == ["root", "bob"]
    assert adapter.rebuilds == 1


def test_notification_packages_follow_recipients(adapter):
    """Empty to non-empty installs once; back to empty removes."""
    converge_aliases(adapter, contribution("alice"))
    assert "logwatch" not in adapter.packages

    converge_aliases(adapter, contribution("alice", "a@x.org"))
    converge_aliases(adapter, contribution("alice", "a@x.org"))
    installs = [c for c in adapter.calls if c[0] == "install_packages"]
    assert installs == [("install_packages", "logwatch")]
    assert "logwatch" in adapter.packages

    report = converge_aliases(adapter, contribution("alice", "a@x.org", "absent"))
    assert report.status_of("packages:notification") == ResourceStatus.APPLIED
    assert "logwatch" not in adapter.packages


def test_aggregation_error_fails_only_alias_step(adapter):
    report = converge_aliases(adapter, contribution("alice", "bad, email"))

    assert report.status_of("mail_alias:aliases") == ResourceStatus.FAILED
    assert report.status_of("packages:notification") == ResourceStatus.BLOCKED
    assert "AggregationError" in report.get("mail_alias:aliases").reason
    assert adapter.aliases == {}


def test_absent_alias_resource_withdraws_everyone(adapter):
    adapter.aliases = {"root": ["bob", "alice"], "alice": ["a@x.org"]}
    aliases = MailAliasResource(
        contributions=[contribution("alice", "a@x.org")], desired_state="absent"
    )

    ConvergenceExecutor().apply([aliases], adapter)

    assert adapter.aliases == {"root": ["bob"]}


def test_alias_resource_reads_source_lazily(adapter):
    contributions = []
    aliases = MailAliasResource.from_source(lambda: tuple(contributions))
    contributions.append(contribution("alice", "a@x.org"))

    ConvergenceExecutor().apply([aliases], adapter)

    assert adapter.aliases["alice"] == ["a@x.org"]


def test_quoted_root_recipient_survives_aggregation():
    current = {"root": ['bob, "|/usr/bin/filter a, b"']}
    new = MailAliasAggregator().aggregate([contribution("alice", "a@x.org")], current)
    assert new["root"] == ["bob", '"|/usr/bin/filter a, b"', "alice"]
