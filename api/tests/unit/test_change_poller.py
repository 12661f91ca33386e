"""
Tests del poller tabla -> hoja: selección por watermark, orden por header,
fallos parciales y avance del watermark.
"""
from datetime import datetime, timezone

import pytest

from app.application.interfaces.sync_ports import DatastoreUnavailableError, SheetClientError
from app.application.services.change_poller import ChangePoller, sheet_position
from app.application.services.watermark import WatermarkTracker
from app.shared.exceptions.domain import TransientIOException, WriteException

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def watermark(clock):
    return WatermarkTracker(initial=EPOCH)


@pytest.fixture
def poller(datastore, sheet, watermark):
    return ChangePoller(datastore=datastore, sheet_client=sheet, watermark=watermark)


class TestSheetPosition:
    def test_numeric_row_ids(self):
        assert sheet_position("7") == 7
        assert sheet_position(" 12 ") == 12

    @pytest.mark.parametrize("row_id", ["1", "0", "-3", "abc", "", "7.5"])
    def test_non_addressable_row_ids(self, row_id):
        assert sheet_position(row_id) is None


class TestRunCycle:
    def test_no_changes_does_not_touch_the_sheet(self, poller, sheet, watermark):
        result = poller.run_cycle()

        assert result.selected == 0
        assert result.success is True
        assert sheet.header_reads == 0
        assert sheet.writes == {}

    def test_pushes_rows_in_header_order(self, poller, datastore, sheet):
        datastore.set_value("7", Name="Ava", Role="Lead", Start_Date="2024-01-01", Extra="x")

        result = poller.run_cycle()

        assert result.pushed == 1
        assert sheet.writes[7] == ["Ava", "Lead", "2024-01-01"]

    def test_header_is_read_once_per_cycle(self, poller, datastore, sheet):
        for row_id in ("2", "3", "4"):
            datastore.set_value(row_id, Name=f"n{row_id}")

        poller.run_cycle()

        assert sheet.header_reads == 1
        assert sheet.write_log == [2, 3, 4]

    def test_missing_columns_are_written_as_empty(self, poller, datastore, sheet):
        datastore.set_value("5", Name="Ava")

        poller.run_cycle()

        assert sheet.writes[5] == ["Ava", "", ""]

    def test_advances_watermark_to_cycle_start(self, poller, datastore, watermark):
        datastore.set_value("7", Name="Ava")

        result = poller.run_cycle()

        assert result.advanced_to == result.started_at
        assert watermark.get() == result.started_at

    def test_rows_are_not_pushed_twice(self, poller, datastore, sheet):
        datastore.set_value("7", Name="Ava")
        poller.run_cycle()

        second = poller.run_cycle()

        assert second.selected == 0
        assert sheet.write_log == [7]

    def test_later_edit_is_pushed_again(self, poller, datastore, sheet):
        datastore.set_value("7", Name="Ava")
        poller.run_cycle()
        datastore.set_value("7", Name="Bea")

        poller.run_cycle()

        assert sheet.writes[7][0] == "Bea"
        assert sheet.write_log == [7, 7]

    def test_partial_failure_keeps_watermark(self, poller, datastore, sheet, watermark):
        for row_id in ("2", "3", "4"):
            datastore.set_value(row_id, Name=f"n{row_id}")
        sheet.failing_positions = {3}

        result = poller.run_cycle()

        assert result.pushed == 2
        assert result.failed == 1
        assert result.failed_row_ids == ["3"]
        assert result.success is False
        assert sorted(sheet.writes) == [2, 4]
        assert watermark.get() == EPOCH

        # El siguiente ciclo reintenta todo lo pendiente
        sheet.failing_positions = set()
        retry = poller.run_cycle()
        assert retry.pushed == 3
        assert watermark.get() == retry.started_at

    def test_rows_without_position_are_skipped(self, poller, datastore, sheet, watermark):
        datastore.set_value("abc", Name="?")
        datastore.set_value("1", Name="header?")
        datastore.set_value("6", Name="Ava")

        result = poller.run_cycle()

        assert result.skipped == 2
        assert result.pushed == 1
        assert list(sheet.writes) == [6]
        assert watermark.get() == result.started_at

    def test_datastore_failure_is_transient(self, poller, datastore, watermark):
        datastore.fail_select = DatastoreUnavailableError("connection refused")

        with pytest.raises(TransientIOException) as exc_info:
            poller.run_cycle()

        assert exc_info.value.details == {"system": "datastore"}
        assert watermark.get() == EPOCH

    def test_header_failure_is_transient(self, poller, datastore, sheet, watermark):
        datastore.set_value("7", Name="Ava")
        sheet.header_error = SheetClientError("403 forbidden")

        with pytest.raises(TransientIOException) as exc_info:
            poller.run_cycle()

        assert exc_info.value.details == {"system": "sheet"}
        assert sheet.writes == {}
        assert watermark.get() == EPOCH

    def test_empty_header_is_a_write_error(self, poller, datastore, sheet, watermark):
        sheet.header = []
        datastore.set_value("7", Name="Ava")

        with pytest.raises(WriteException):
            poller.run_cycle()

        assert watermark.get() == EPOCH

    def test_edit_during_cycle_is_picked_up_next_time(self, datastore, sheet, watermark):
        class EditingSheet(type(sheet)):
            def write_row(self, position, values):
                super().write_row(position, values)
                if position == 2:
                    datastore.set_value("3", Name="mid-cycle")

        editing = EditingSheet(header=["Name"])
        poller = ChangePoller(datastore=datastore, sheet_client=editing, watermark=watermark)
        datastore.set_value("2", Name="first")

        poller.run_cycle()
        result = poller.run_cycle()

        assert result.pushed == 1
        assert editing.writes[3] == ["mid-cycle"]

    def test_untranslated_error_on_one_row_is_counted_as_failed(self, datastore, sheet, watermark):
        class FlakySheet(type(sheet)):
            def write_row(self, position, values):
                if position == 3:
                    raise RuntimeError("socket cerrado por el proxy")
                super().write_row(position, values)

        flaky = FlakySheet(header=["Name"])
        poller = ChangePoller(datastore=datastore, sheet_client=flaky, watermark=watermark)
        for row_id in ("2", "3", "4"):
            datastore.set_value(row_id, Name=f"n{row_id}")

        result = poller.run_cycle()

        assert flaky.write_log == [2, 4]
        assert result.pushed == 2
        assert result.failed_row_ids == ["3"]
        assert watermark.get() == EPOCH
