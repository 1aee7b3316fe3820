from collections import Counter
from collections.abc import Sequence

from station_contacts.schemas.pipeline import Stage, StageSummary
from station_contacts.schemas.station import ContactFacts, EnhancedRecord, ResolutionStatus

_JOIN = "; "


def stage_facts(stage: Stage, record: EnhancedRecord) -> ContactFacts | None:
    if stage == Stage.website:
        return record.websiteResolution
    if stage == Stage.site_contacts:
        return record.contactDetails
    return record.fccContactInfo


def has_contact(stage: Stage, record: EnhancedRecord) -> bool:
    facts = stage_facts(stage, record)
    return facts is not None and facts.has_contact()


def build_summary(stage: Stage, records: Sequence[EnhancedRecord]) -> StageSummary:
    summary = StageSummary(total=len(records))
    by_state: Counter[str] = Counter()

    for record in records:
        facts = stage_facts(stage, record)
        if facts is not None and facts.success:
            summary.successful += 1
        else:
            summary.failed += 1

        if stage == Stage.website:
            if record.status == ResolutionStatus.found:
                summary.found += 1
                by_state[record.state or "Unknown"] += 1
            elif record.status == ResolutionStatus.not_found:
                summary.not_found += 1
            else:
                summary.errors += 1

        if facts is None:
            continue
        summary.total_phones += len(facts.phoneNumbers)
        summary.total_emails += len(facts.emailAddresses)
        summary.total_contact_pages += len(facts.contactPageLinks)
        summary.with_phones += bool(facts.phoneNumbers)
        summary.with_emails += bool(facts.emailAddresses)
        summary.with_contact_pages += bool(facts.contactPageLinks)
        summary.with_any_contact += facts.has_contact()

    summary.found_by_state = dict(by_state.most_common())
    return summary


def _pct(part: int, total: int) -> str:
    return f"{(part / total * 100) if total else 0:.1f}%"


def summary_lines(stage: Stage, summary: StageSummary) -> list[str]:
    """Human-readable summary, one line per statistic."""
    total = summary.total
    if stage == Stage.website:
        lines = [
            f"Total stations processed: {total}",
            f"Official websites found: {summary.found} ({_pct(summary.found, total)})",
            f"Websites not found: {summary.not_found} ({_pct(summary.not_found, total)})",
            f"Errors encountered: {summary.errors} ({_pct(summary.errors, total)})",
        ]
        lines.extend(f"  {state}: {count}" for state, count in summary.found_by_state.items())
        return lines

    return [
        f"Total stations processed: {total}",
        f"Successful scrapes: {summary.successful} ({_pct(summary.successful, total)})",
        f"Stations with phone numbers: {summary.with_phones} ({_pct(summary.with_phones, total)})",
        f"Stations with email addresses: {summary.with_emails} ({_pct(summary.with_emails, total)})",
        f"Stations with contact pages: {summary.with_contact_pages} "
        f"({_pct(summary.with_contact_pages, total)})",
        f"Stations with any contact info: {summary.with_any_contact} "
        f"({_pct(summary.with_any_contact, total)})",
        f"Total phone numbers found: {summary.total_phones}",
        f"Total email addresses found: {summary.total_emails}",
        f"Total contact pages found: {summary.total_contact_pages}",
    ]


def _joined(values: Sequence[str]) -> str:
    return _JOIN.join(values)


def _site_key_fields(r: EnhancedRecord) -> list[str]:
    return [r.wikipediaURL or "", r.state or "", r.city or "", r.officialWebsite or ""]


def _fcc_key_fields(r: EnhancedRecord) -> list[str]:
    return [r.callSign or "", r.state or "", r.city or "", r.fccURL or ""]


def csv_report(
    stage: Stage, records: Sequence[EnhancedRecord]
) -> tuple[list[str], list[list[str]]]:
    """(header, rows) mirroring the JSON output's main fields."""
    if stage == Stage.website:
        header = ["Wikipedia URL", "State", "City", "Official Website", "Status", "Error"]
        rows = [
            [
                r.wikipediaURL or "", r.state or "", r.city or "",
                r.officialWebsite or "", r.status or "", r.error or "",
            ]
            for r in records
        ]
        return header, rows

    if stage == Stage.site_contacts:
        header = [
            "Wikipedia URL", "State", "City", "Official Website",
            "Phone Numbers", "Email Addresses", "Contact Pages", "Status",
        ]
        key_fields = _site_key_fields
    else:
        header = [
            "Call Sign", "State", "City", "FCC URL",
            "Phone Numbers", "Email Addresses", "Contact Pages", "Main Studio Address", "Status",
        ]
        key_fields = _fcc_key_fields

    rows = []
    for record in records:
        facts = stage_facts(stage, record) or ContactFacts()
        row = key_fields(record) + [
            _joined(facts.phoneNumbers),
            _joined(facts.emailAddresses),
            _joined(facts.contactPageLinks),
        ]
        if stage == Stage.fcc:
            row.append(getattr(facts, "mainStudioAddress", ""))
        row.append("Success" if facts.success else "Failed")
        rows.append(row)
    return header, rows


def report_subsets(
    stage: Stage, records: Sequence[EnhancedRecord]
) -> dict[str, list[EnhancedRecord]]:
    """Filtered views keyed by output-file suffix; empty views are omitted."""
    if stage == Stage.website:
        subsets = {
            "_found": [r for r in records if r.status == ResolutionStatus.found],
            "_not_found": [r for r in records if r.status == ResolutionStatus.not_found],
        }
    else:
        subsets = {"_with_contact": [r for r in records if has_contact(stage, r)]}
    return {suffix: subset for suffix, subset in subsets.items() if subset}
