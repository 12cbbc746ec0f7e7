"""
Spreadsheet Edit Manager

Reads a spreadsheet into a SpreadsheetContext and applies accepted
spreadsheet edit proposals.

A plan is sent as at most two calls: one spreadsheets.batchUpdate holding
every dimension change, then one values.batchUpdate holding every value
write, so seed values land in rows and columns that already exist.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from core.utils import handle_http_errors
from gsheets.sheets_helpers import build_spreadsheet_context, quote_sheet_name
from proposals.models import SpreadsheetContext
from proposals.planner import plan_spreadsheet_edit, split_spreadsheet_plan
from proposals.schema import EditInstruction, ProposalStatus, transition

logger = logging.getLogger(__name__)

# Formulas must be parsed by Sheets, not stored as literal text
VALUE_INPUT_OPTION = "USER_ENTERED"


class SpreadsheetEditManager:
    """
    High-level edit proposal operations for one Sheets API service.

    Args:
        service: Google Sheets API service (googleapiclient discovery resource)
    """

    def __init__(self, service):
        self.service = service

    @handle_http_errors("read_spreadsheet", is_read_only=True, service_type="sheets")
    async def read_spreadsheet(
        self, spreadsheet_id: str, active_sheet: Optional[str] = None
    ) -> SpreadsheetContext:
        spreadsheet = await asyncio.to_thread(
            self.service.spreadsheets()
            .get(
                spreadsheetId=spreadsheet_id,
                fields="properties.title,sheets.properties(sheetId,title,index,gridProperties)",
            )
            .execute
        )

        sheets = spreadsheet.get("sheets", [])
        if not sheets:
            return build_spreadsheet_context(spreadsheet_id, spreadsheet)

        title = active_sheet or sheets[0].get("properties", {}).get("title", "Sheet1")
        result = await asyncio.to_thread(
            self.service.spreadsheets()
            .values()
            .get(spreadsheetId=spreadsheet_id, range=quote_sheet_name(title))
            .execute
        )

        context = build_spreadsheet_context(
            spreadsheet_id, spreadsheet, active_sheet_title=title, active_values=result.get("values", [])
        )
        logger.info(
            f"[read_spreadsheet] '{context.title}': {len(context.sheets)} sheets, active '{title}'"
        )
        return context

    @handle_http_errors("apply_sheet_edit", service_type="sheets")
    async def _execute_plan(
        self,
        spreadsheet_id: str,
        dimension_requests: List[Dict[str, Any]],
        value_updates: List[Dict[str, Any]],
    ) -> None:
        if dimension_requests:
            await asyncio.to_thread(
                self.service.spreadsheets()
                .batchUpdate(spreadsheetId=spreadsheet_id, body={"requests": dimension_requests})
                .execute
            )
        if value_updates:
            await asyncio.to_thread(
                self.service.spreadsheets()
                .values()
                .batchUpdate(
                    spreadsheetId=spreadsheet_id,
                    body={"valueInputOption": VALUE_INPUT_OPTION, "data": value_updates},
                )
                .execute
            )

    async def apply(
        self,
        spreadsheet_id: str,
        instruction: EditInstruction,
        context: Optional[SpreadsheetContext] = None,
        active_sheet: Optional[str] = None,
    ) -> Tuple[EditInstruction, List[Dict[str, Any]]]:
        """
        Accept a pending instruction and apply it.

        Args:
            spreadsheet_id: Target spreadsheet
            instruction: Pending spreadsheet instruction
            context: Spreadsheet snapshot for sheet-id resolution; read when omitted
            active_sheet: Sheet that bare ranges belong to when the snapshot is read here

        Returns:
            The accepted instruction and the operations that were sent

        Raises:
            InvalidProposalState: the instruction is not pending
            SchemaViolation: the instruction names a sheet that does not exist
            MutationFailure: the API rejected a call (instruction stays pending)
        """
        accepted = transition(instruction, ProposalStatus.ACCEPTED, "accept")
        if context is None:
            context = await self.read_spreadsheet(spreadsheet_id, active_sheet)

        operations = plan_spreadsheet_edit(instruction, context)
        dimension_requests, value_updates = split_spreadsheet_plan(operations)
        await self._execute_plan(
            spreadsheet_id=spreadsheet_id,
            dimension_requests=dimension_requests,
            value_updates=value_updates,
        )
        logger.info(
            f"[apply_sheet_edit] Applied {instruction.kind.value} to {spreadsheet_id} "
            f"({len(dimension_requests)} dimension request(s), {len(value_updates)} value write(s))"
        )
        return accepted, operations

    def reject(self, instruction: EditInstruction) -> EditInstruction:
        """Discard a pending instruction; nothing is sent to the API."""
        return transition(instruction, ProposalStatus.REJECTED, "reject")
