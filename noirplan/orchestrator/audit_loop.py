"""Audit-and-patch loop: consistency audit, coverage analysis, issue resolution"""

import asyncio
import logging
from typing import List, Optional

from noirplan.agents import AuditorAgent, CoverageAgent, ResolverAgent
from noirplan.llm import GenerationGateway
from noirplan.memory import DocumentStore
from noirplan.models import (
    AuditVerdict,
    ConsistencyIssue,
    ConsistencyReport,
    Mystery,
    Stage,
)
from .errors import EntityNotFoundError
from .slots import TaskSlots
from .workflow import StageWorkflow

logger = logging.getLogger(__name__)


def build_report(verdict: AuditVerdict) -> ConsistencyReport:
    """Turn the raw verdict into a report with unique ids and every issue open"""
    seen = set()
    issues: List[ConsistencyIssue] = []
    for index, draft in enumerate(verdict.issues, start=1):
        issue_id = draft.id.strip()
        if not issue_id or issue_id in seen:
            issue_id = f"issue-{index}"
            suffix = 1
            while issue_id in seen:
                suffix += 1
                issue_id = f"issue-{index}-{suffix}"
        seen.add(issue_id)
        issues.append(ConsistencyIssue(
            id=issue_id,
            description=draft.description,
            suggestion=draft.suggestion,
            fixed=False,
        ))

    return ConsistencyReport(is_valid=verdict.is_valid, issues=issues, notes=verdict.notes)


class AuditWorkflow:
    """Runs audits and resolves the issues they find"""

    def __init__(
        self,
        store: DocumentStore,
        gateway: GenerationGateway,
        slots: Optional[TaskSlots] = None,
        workflow: Optional[StageWorkflow] = None,
        enforce_preconditions: bool = True
    ):
        self.store = store
        self.slots = slots or TaskSlots()
        self.workflow = workflow or StageWorkflow()
        self.enforce_preconditions = enforce_preconditions

        self.auditor = AuditorAgent(gateway)
        self.coverage = CoverageAgent(gateway)
        self.resolver = ResolverAgent(gateway)

    async def run_audit(self) -> Mystery:
        """
        Audit the document and map its evidence coverage.

        The two gateway calls run concurrently. Their results are committed
        together, and only when both succeed.
        """
        with self.slots.issues.claim("audit"):
            mystery = self.store.get()
            self.workflow.require(Stage.AUDIT, mystery, self.enforce_preconditions)

            logger.info("[Audit] Running consistency audit and coverage analysis")
            tasks = [
                asyncio.create_task(self.auditor.execute({"mystery": mystery})),
                asyncio.create_task(self.coverage.execute({"mystery": mystery})),
            ]
            try:
                verdict, beats = await asyncio.gather(*tasks)
            except BaseException:
                # no call may outlive the slot claim
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

            report = build_report(verdict)
            logger.info(
                f"[Audit] valid={report.is_valid}, {len(report.issues)} issues, {len(beats)} beats"
            )
            return self.store.update({"consistency_report": report, "beats": beats})

    async def resolve_issue(self, issue_id: str) -> Mystery:
        """
        Patch the timeline for one issue and mark that issue fixed.

        Raises:
            ValueError: If no audit report exists
            EntityNotFoundError: If the report has no such issue
        """
        report = self.store.get().consistency_report
        if report is None:
            raise ValueError("No audit report; run the audit first")
        issue = report.get_issue(issue_id)
        if issue is None:
            raise EntityNotFoundError("issues", issue_id)

        with self.slots.issues.claim(issue_id):
            patch = await self.resolver.execute({
                "issue_description": issue.description,
                "timeline": self.store.get().timeline,
            })

            # The report may have been replaced while the call was out
            report = self.store.get().consistency_report
            issue = report.get_issue(issue_id) if report else None
            if issue is None:
                raise EntityNotFoundError("issues", issue_id)

            fixed = issue.model_copy(update={"fixed": True, "suggestion": patch.summary})
            issues = [fixed if i.id == issue_id else i for i in report.issues]
            updated_report = report.model_copy(update={
                "issues": issues,
                "notes": f"{report.notes}\n(Fixed: {patch.summary})",
            })

            logger.info(f"[Resolver] Issue {issue_id} fixed: {patch.summary}")
            return self.store.update({
                "timeline": patch.timeline,
                "consistency_report": updated_report,
            })
