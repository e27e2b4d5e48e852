"""
Fabtrack Backend — Form Service Unit Tests
===========================================

What:  Tests for FormService rules with a mocked AsyncSession.
How:   Mock DB sessions and a mock CodeService (no real DB, no QR rendering).

What we test:
    ✅ Create: code generated for the allocated id before anything is added
    ✅ Create: invalid body / QR failure / store failure → 400, nothing added
    ✅ Full update: missing keys reported before touching the store
    ✅ Rates update: only supplied rates change
    ✅ Malformed ids are NotFoundError without a query
    ✅ Store failures become InternalError with the original text
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from fabtrack.exceptions import CodeGenerationError, InternalError, NotFoundError, ValidationError
from fabtrack.schemas.form import FULL_UPDATE_FIELDS
from fabtrack.services.form_service import MAX_PAGE, FormService, parse_form_id, parse_page

FAKE_CODE = "data:image/png;base64,iVBORw0KGgo="


def _stamp_on_flush(session):
    """Mimic the INSERT defaults the database layer fills in on flush."""

    async def flush():
        form = session.add.call_args[0][0]
        now = datetime.now(timezone.utc)
        form.created_at = now
        form.updated_at = now

    session.flush = AsyncMock(side_effect=flush)


def _result_with(form):
    result = MagicMock()
    result.scalar_one_or_none.return_value = form
    return result


class TestParsing:

    def test_parse_form_id_accepts_uuid_string(self):
        form_id = uuid.uuid4()
        assert parse_form_id(str(form_id)) == form_id

    @pytest.mark.parametrize("raw", ["not-an-id", "507f1f77bcf86cd799439011", "", "123"])
    def test_parse_form_id_malformed_is_not_found(self, raw):
        with pytest.raises(NotFoundError):
            parse_form_id(raw)

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 1), ("1", 1), ("2", 2), ("abc", 1), ("0", 1), ("-3", 1), ("", 1),
            ("100000000000000000000", MAX_PAGE), (str(MAX_PAGE), MAX_PAGE),
        ],
    )
    def test_parse_page(self, raw, expected):
        assert parse_page(raw) == expected


class TestCreateForm:

    def setup_method(self):
        self.codes = MagicMock()
        self.codes.generate_for = AsyncMock(return_value=FAKE_CODE)
        self.service = FormService(codes=self.codes)

    @pytest.mark.asyncio
    async def test_create_success(self, mock_db_session, sample_form_payload):
        _stamp_on_flush(mock_db_session)

        result = await self.service.create_form(mock_db_session, sample_form_payload)

        added = mock_db_session.add.call_args[0][0]
        self.codes.generate_for.assert_awaited_once_with(added.id)
        assert result.message == "Form data saved successfully!"
        assert result.form.id == added.id
        assert result.form.code == FAKE_CODE
        assert result.form.aretical_no == "ART-1042"
        assert result.form.warp_details == sample_form_payload["warpDetails"]
        assert result.form.warp_rate is None

    @pytest.mark.asyncio
    async def test_client_id_and_code_are_ignored(self, mock_db_session, sample_form_payload):
        _stamp_on_flush(mock_db_session)
        supplied_id = str(uuid.uuid4())
        payload = {**sample_form_payload, "id": supplied_id, "code": "data:forged", "warpRate": "9"}

        result = await self.service.create_form(mock_db_session, payload)

        assert str(result.form.id) != supplied_id
        assert result.form.code == FAKE_CODE
        assert result.form.warp_rate is None

    @pytest.mark.asyncio
    async def test_optional_mill_fields_default_to_empty(self, mock_db_session, sample_form_payload):
        _stamp_on_flush(mock_db_session)
        del sample_form_payload["dyingMillName"]
        del sample_form_payload["fabricsShortage"]

        result = await self.service.create_form(mock_db_session, sample_form_payload)

        assert result.form.dying_mill_name == ""
        assert result.form.fabrics_shortage == ""

    @pytest.mark.asyncio
    async def test_numbers_are_stored_as_text(self, mock_db_session, sample_form_payload):
        _stamp_on_flush(mock_db_session)
        sample_form_payload["areticalNo"] = 1042

        result = await self.service.create_form(mock_db_session, sample_form_payload)

        assert result.form.aretical_no == "1042"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["areticalNo", "name", "date", "warpDetails", "weftDetails"])
    async def test_missing_required_field_rejected(self, mock_db_session, sample_form_payload, field):
        del sample_form_payload[field]

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_form(mock_db_session, sample_form_payload)

        assert exc_info.value.message == "Error saving form data"
        assert field in exc_info.value.error
        self.codes.generate_for.assert_not_awaited()
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self, mock_db_session, sample_form_payload):
        sample_form_payload["name"] = ""

        with pytest.raises(ValidationError):
            await self.service.create_form(mock_db_session, sample_form_payload)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_code_failure_prevents_save(self, mock_db_session, sample_form_payload):
        self.codes.generate_for = AsyncMock(side_effect=CodeGenerationError("URL is too long to encode as a QR code"))

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_form(mock_db_session, sample_form_payload)

        assert exc_info.value.error == "URL is too long to encode as a QR code"
        mock_db_session.add.assert_not_called()
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_is_400(self, mock_db_session, sample_form_payload):
        mock_db_session.flush = AsyncMock(side_effect=RuntimeError("disk full"))

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_form(mock_db_session, sample_form_payload)

        assert exc_info.value.to_body() == {"message": "Error saving form data", "error": "disk full"}


class TestReadForms:

    def setup_method(self):
        self.service = FormService(codes=MagicMock())

    @pytest.mark.asyncio
    async def test_get_form_found(self, mock_db_session, make_form):
        form = make_form()
        mock_db_session.execute.return_value = _result_with(form)

        result = await self.service.get_form(mock_db_session, str(form.id))

        assert result.id == form.id
        assert result.name == form.name

    @pytest.mark.asyncio
    async def test_get_form_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = _result_with(None)

        with pytest.raises(NotFoundError, match="Form not found"):
            await self.service.get_form(mock_db_session, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_get_form_malformed_id_skips_query(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_form(mock_db_session, "garbage")
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_form_store_error(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=RuntimeError("connection reset"))

        with pytest.raises(InternalError) as exc_info:
            await self.service.get_form(mock_db_session, str(uuid.uuid4()), error_message="Error fetching form")

        assert exc_info.value.message == "Error fetching form"
        assert exc_info.value.error == "connection reset"

    @pytest.mark.asyncio
    async def test_list_forms_pages(self, mock_db_session, make_form):
        forms = [make_form() for _ in range(5)]
        page_result = MagicMock()
        page_result.scalars.return_value.all.return_value = forms
        count_result = MagicMock()
        count_result.scalar.return_value = 35
        mock_db_session.execute = AsyncMock(side_effect=[page_result, count_result])

        result = await self.service.list_forms(mock_db_session, page=2)

        assert len(result.forms) == 5
        assert result.page == 2
        assert result.total_pages == 2

    @pytest.mark.asyncio
    async def test_list_forms_empty(self, mock_db_session):
        page_result = MagicMock()
        page_result.scalars.return_value.all.return_value = []
        count_result = MagicMock()
        count_result.scalar.return_value = 0
        mock_db_session.execute = AsyncMock(side_effect=[page_result, count_result])

        result = await self.service.list_forms(mock_db_session)

        assert result.forms == []
        assert result.page == 1
        assert result.total_pages == 0

    @pytest.mark.asyncio
    async def test_list_forms_store_error(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=RuntimeError("timeout"))

        with pytest.raises(InternalError) as exc_info:
            await self.service.list_forms(mock_db_session)

        assert exc_info.value.message == "Error fetching form history"


class TestUpdateForm:

    def setup_method(self):
        self.service = FormService(codes=MagicMock())

    def _full_body(self):
        return {
            "areticalNo": "ART-2000",
            "name": "Linen blend",
            "date": "2024-04-01",
            "warpDetails": [{"count": "60s"}],
            "weftDetails": [],
            "dyingMillName": "",
            "fabricsShortage": "",
            "code": "data:image/png;base64,AAAA",
        }

    @pytest.mark.asyncio
    async def test_replaces_fields(self, mock_db_session, make_form):
        form = make_form(warp_rate="11")
        mock_db_session.execute.return_value = _result_with(form)

        result = await self.service.update_form(mock_db_session, str(form.id), self._full_body())

        assert result.message == "Form updated successfully"
        assert result.data.aretical_no == "ART-2000"
        assert result.data.weft_details == []
        assert result.data.dying_mill_name == ""
        assert result.data.warp_rate == "11"
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_body_id_is_stripped(self, mock_db_session, make_form):
        form = make_form()
        original_id = form.id
        mock_db_session.execute.return_value = _result_with(form)
        body = {**self._full_body(), "id": str(uuid.uuid4()), "_id": "x"}

        result = await self.service.update_form(mock_db_session, str(form.id), body)

        assert result.data.id == original_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", FULL_UPDATE_FIELDS)
    async def test_each_missing_field_is_reported(self, mock_db_session, field):
        body = self._full_body()
        del body[field]

        with pytest.raises(ValidationError) as exc_info:
            await self.service.update_form(mock_db_session, str(uuid.uuid4()), body)

        assert exc_info.value.to_body() == {"message": "Missing required fields", "missingFields": [field]}
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_missing_fields_listed_in_order(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.update_form(mock_db_session, str(uuid.uuid4()), {"name": "x"})

        assert exc_info.value.missing_fields == [f for f in FULL_UPDATE_FIELDS if f != "name"]

    @pytest.mark.asyncio
    async def test_wrong_type_rejected(self, mock_db_session):
        body = {**self._full_body(), "warpDetails": "not a list"}

        with pytest.raises(ValidationError, match="Invalid field values"):
            await self.service.update_form(mock_db_session, str(uuid.uuid4()), body)

    @pytest.mark.asyncio
    async def test_unknown_form(self, mock_db_session):
        mock_db_session.execute.return_value = _result_with(None)

        with pytest.raises(NotFoundError):
            await self.service.update_form(mock_db_session, str(uuid.uuid4()), self._full_body())

    @pytest.mark.asyncio
    async def test_updated_at_bumped_even_without_changes(self, mock_db_session, make_form):
        stale = datetime(2024, 1, 1, tzinfo=timezone.utc)
        form = make_form(updated_at=stale)
        mock_db_session.execute.return_value = _result_with(form)
        body = {
            "areticalNo": form.aretical_no,
            "name": form.name,
            "date": form.date,
            "warpDetails": form.warp_details,
            "weftDetails": form.weft_details,
            "dyingMillName": form.dying_mill_name,
            "fabricsShortage": form.fabrics_shortage,
            "code": form.code,
        }

        result = await self.service.update_form(mock_db_session, str(form.id), body)

        assert result.data.updated_at > stale


class TestUpdateRates:

    def setup_method(self):
        self.service = FormService(codes=MagicMock())

    @pytest.mark.asyncio
    async def test_sets_only_supplied_rate(self, mock_db_session, make_form):
        form = make_form(weft_rate="7")
        mock_db_session.execute.return_value = _result_with(form)

        result = await self.service.update_rates(mock_db_session, str(form.id), {"warpRate": "12"})

        assert result.data.warp_rate == "12"
        assert result.data.weft_rate == "7"
        assert result.data.code == form.code

    @pytest.mark.asyncio
    async def test_null_clears_rate(self, mock_db_session, make_form):
        form = make_form(weft_rate="7")
        mock_db_session.execute.return_value = _result_with(form)

        result = await self.service.update_rates(mock_db_session, str(form.id), {"weftRate": None})

        assert result.data.weft_rate is None

    @pytest.mark.asyncio
    async def test_same_rate_still_bumps_updated_at(self, mock_db_session, make_form):
        stale = datetime(2024, 1, 1, tzinfo=timezone.utc)
        form = make_form(warp_rate="12", updated_at=stale)
        mock_db_session.execute.return_value = _result_with(form)

        result = await self.service.update_rates(mock_db_session, str(form.id), {"warpRate": "12"})

        assert result.data.updated_at > stale

    @pytest.mark.asyncio
    async def test_no_rates_rejected_before_lookup(self, mock_db_session):
        with pytest.raises(ValidationError, match="No valid fields to update"):
            await self.service.update_rates(mock_db_session, "not-even-an-id", {"name": "ignored"})
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_error_uses_caught_error(self, mock_db_session, make_form):
        form = make_form()
        mock_db_session.execute.return_value = _result_with(form)
        mock_db_session.flush = AsyncMock(side_effect=RuntimeError("deadlock detected"))

        with pytest.raises(InternalError) as exc_info:
            await self.service.update_rates(mock_db_session, str(form.id), {"warpRate": "12"})

        assert exc_info.value.message == "Error updating form rates"
        assert exc_info.value.error == "deadlock detected"


class TestDeleteForm:

    def setup_method(self):
        self.service = FormService(codes=MagicMock())

    @pytest.mark.asyncio
    async def test_delete_existing(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=1)
        await self.service.delete_form(mock_db_session, str(uuid.uuid4()))
        mock_db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_missing(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=0)
        with pytest.raises(NotFoundError):
            await self.service.delete_form(mock_db_session, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_delete_store_error(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=RuntimeError("read-only transaction"))
        with pytest.raises(InternalError, match="Error deleting form"):
            await self.service.delete_form(mock_db_session, str(uuid.uuid4()))
