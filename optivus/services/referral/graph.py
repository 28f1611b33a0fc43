"""
Referral graph.

Sponsorship edges live on Account.sponsor_id. Upward walks use a recursive
CTE; downward walks go level by level so arbitrarily deep or wide trees
never hit Python's recursion limit.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.account import Account
from optivus.models.enums import AccountStatus
from optivus.services.base_service import BaseService
from optivus.services.referral.config import MAX_GRAPH_DEPTH
from optivus.utils.exceptions import (
    InvalidReferralCode,
    ReferralCycle,
    SponsorAlreadySet,
)
from optivus.utils.datetime_utils import utc_now


@dataclass
class TeamNode:
    """Node of a downline tree."""

    account_id: int
    username: str
    name: str
    level: int
    status: str
    joined_at: datetime | None
    children: list["TeamNode"] = field(default_factory=list)

    def flatten(self) -> list["TeamNode"]:
        """Depth-first list of this node's descendants (iterative)."""
        result: list[TeamNode] = []
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            result.append(node)
            stack.extend(reversed(node.children))
        return result


class ReferralGraph(BaseService):
    """Sponsorship edges and traversals."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral graph."""
        super().__init__(session)

    async def attach_sponsor(self, child_id: int, sponsor_referral_code: str) -> Account:
        """
        Link an account to its sponsor, exactly once.

        Args:
            child_id: Account being sponsored
            sponsor_referral_code: Sponsor's referral code

        Returns:
            Sponsor account

        Raises:
            InvalidReferralCode: Code unknown or sponsor not active
            SponsorAlreadySet: Child already has a sponsor
            ReferralCycle: Sponsor is the child or one of its descendants
        """
        async with self.account_transaction(child_id) as child:
            sponsor = await self.link_sponsor(child, sponsor_referral_code)
        return sponsor

    async def link_sponsor(self, child: Account, sponsor_referral_code: str) -> Account:
        """
        Link sponsor inside the caller's transaction.

        The child row must already be locked by the caller.
        """
        if child.sponsor_id is not None:
            raise SponsorAlreadySet(account_id=child.id)

        sponsor = await self.resolve_referral_code(sponsor_referral_code)

        if sponsor.id == child.id:
            raise ReferralCycle(account_id=child.id)
        ancestors = await self.account_repo.get_ancestor_chain(
            sponsor.id, MAX_GRAPH_DEPTH
        )
        if any(a.id == child.id for a in ancestors):
            self.logger.warning(
                "Referral loop detected",
                extra={
                    "child_id": child.id,
                    "sponsor_id": sponsor.id,
                    "chain_ids": [a.id for a in ancestors],
                },
            )
            raise ReferralCycle(account_id=child.id, sponsor_id=sponsor.id)

        child.sponsor_id = sponsor.id
        child.updated_at = utc_now()
        await self.session.flush()

        self.logger.info(
            "Sponsor attached",
            extra={"child_id": child.id, "sponsor_id": sponsor.id},
        )
        return sponsor

    async def resolve_referral_code(self, code: str | None) -> Account:
        """
        Resolve referral code to an active sponsor.

        Raises:
            InvalidReferralCode: Unknown code or inactive sponsor
        """
        if not code or not code.strip():
            raise InvalidReferralCode()
        sponsor = await self.account_repo.get_by_referral_code(code)
        if sponsor is None or sponsor.status != AccountStatus.ACTIVE.value:
            raise InvalidReferralCode(referral_code=code)
        return sponsor

    async def ancestor_chain(self, account_id: int, max_depth: int) -> list[Account]:
        """
        Sponsors from the direct sponsor upward.

        Args:
            account_id: Starting account
            max_depth: Maximum number of ancestors

        Returns:
            Ancestors, closest first; shorter when the root is reached
        """
        return await self.account_repo.get_ancestor_chain(account_id, max_depth)

    async def direct_referrals(self, account_id: int) -> list[Account]:
        """Accounts directly sponsored by account."""
        return await self.account_repo.get_children([account_id])

    async def descendant_tree(
        self, account_id: int, max_depth: int | None = None
    ) -> list[TeamNode]:
        """
        Full downline as nested nodes.

        Breadth-first: one query per level, no recursion.

        Args:
            account_id: Root of the downline
            max_depth: Optional depth limit

        Returns:
            Direct referrals as TeamNode trees
        """
        await self.get_account(account_id)

        roots: list[TeamNode] = []
        nodes_by_id: dict[int, TeamNode] = {}
        visited = {account_id}
        frontier = [account_id]
        level = 1

        while frontier and (max_depth is None or level <= max_depth):
            children = await self.account_repo.get_children(frontier)
            next_frontier: list[int] = []
            for child in children:
                if child.id in visited:
                    continue
                visited.add(child.id)
                node = TeamNode(
                    account_id=child.id,
                    username=child.username,
                    name=child.full_name,
                    level=level,
                    status=child.status,
                    joined_at=child.activated_at,
                )
                nodes_by_id[child.id] = node
                if child.sponsor_id == account_id:
                    roots.append(node)
                else:
                    nodes_by_id[child.sponsor_id].children.append(node)
                next_frontier.append(child.id)
            frontier = next_frontier
            level += 1

        return roots

    async def level_counts(self, account_id: int, max_depth: int) -> dict[int, int]:
        """
        Team size per level.

        Args:
            account_id: Upline account
            max_depth: Deepest level to count

        Returns:
            Mapping level -> number of accounts (levels without members omitted)
        """
        counts: dict[int, int] = {}
        frontier = [account_id]
        for level in range(1, max_depth + 1):
            children = await self.account_repo.get_children(frontier)
            if not children:
                break
            counts[level] = len(children)
            frontier = [c.id for c in children]
        return counts
