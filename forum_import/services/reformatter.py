"""Rewrites legacy rich-text documents into the target dialect."""

import logging
from typing import List, Optional, Tuple
from xml.etree import ElementTree as ET

from ..errors import MalformedContentError

logger = logging.getLogger(__name__)

LEGACY_USER_MENTION = "USERMENTION"
LEGACY_POST_MENTION = "POSTMENTION"
MENTION = "MENTION"


def parse_document(content: str) -> ET.Element:
    """Parse a rich-text document, raising MalformedContentError when it isn't XML."""
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise MalformedContentError(f"Malformed content: {e}") from e


class ContentReformatter:
    """
    Converts legacy rich text into the target dialect.

    User mentions are rewritten into the target mention element, keeping the
    rendered text. Post mentions are dropped; the reply structure they carry
    is recovered separately from the legacy mention table. Everything else
    is structurally compatible and passes through.
    """

    def __init__(
        self,
        user_mention_tag: str = LEGACY_USER_MENTION,
        post_mention_tag: str = LEGACY_POST_MENTION,
        mention_tag: str = MENTION,
    ):
        self.user_mention_tag = user_mention_tag
        self.post_mention_tag = post_mention_tag
        self.mention_tag = mention_tag

    def reformat(self, content: Optional[str]) -> str:
        """
        Reformat a legacy document.

        Args:
            content: Legacy XML document, possibly empty

        Returns:
            The root element serialized in the target dialect, or ""
        """
        if not content:
            return ""

        root = parse_document(content)

        # Collect first, rewrite after: the tree is never mutated while walked.
        user_mentions: List[Tuple[ET.Element, ET.Element]] = []
        post_mentions: List[Tuple[ET.Element, ET.Element]] = []
        for parent in root.iter():
            for child in parent:
                if child.tag == self.user_mention_tag:
                    user_mentions.append((parent, child))
                elif child.tag == self.post_mention_tag:
                    post_mentions.append((parent, child))

        for parent, element in user_mentions:
            self._replace(parent, element, self._convert_user_mention(element))

        for parent, element in post_mentions:
            self._remove(parent, element)

        if user_mentions or post_mentions:
            logger.debug(
                f"Rewrote {len(user_mentions)} user mentions, removed {len(post_mentions)} post mentions"
            )

        return ET.tostring(root, encoding="unicode")

    def _convert_user_mention(self, element: ET.Element) -> ET.Element:
        # <USERMENTION id="1" username="Toby">@Toby</USERMENTION>
        mention = ET.Element(self.mention_tag, {
            "id": element.get("id", ""),
            "name": element.get("username", ""),
        })
        mention.text = "".join(element.itertext())
        mention.tail = element.tail
        return mention

    @staticmethod
    def _replace(parent: ET.Element, old: ET.Element, new: ET.Element) -> None:
        parent[list(parent).index(old)] = new

    @staticmethod
    def _remove(parent: ET.Element, element: ET.Element) -> None:
        # <POSTMENTION discussionid="1" id="123" number="2" username="Toby">@Toby#123</POSTMENTION>
        children = list(parent)
        index = children.index(element)
        if element.tail:
            if index > 0:
                previous = children[index - 1]
                previous.tail = (previous.tail or "") + element.tail
            else:
                parent.text = (parent.text or "") + element.tail
        parent.remove(element)
