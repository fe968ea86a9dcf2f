"""
Work-item scheduler.

The backlog is the cartesian product subjects x topics x intents plus
subjects x competitors (comparison content). WorkQueue addresses it by
index so the full product is never materialised; next_batch() claims a
shuffled, collision-free batch from it.
"""
import random
from typing import Dict, Iterator, List, Optional, Sequence

import structlog

from .catalog import COMPARISON_INTENT, COMPARISON_TOPIC
from .schemas import ExistingContent, WorkItem
from .seo import slugify

logger = structlog.get_logger()

# Only this much of the slug base is compared against existing slugs
SLUG_PREFIX_LENGTH = 50


class WorkQueue:
    """
    Index-addressable backlog of WorkItems.

    Indexes [0, deep) decode to subject/topic/intent items and
    [deep, len) to subject/competitor items.
    """

    def __init__(
        self,
        subjects: Sequence[str],
        topics: Sequence[str],
        intents: Sequence[str],
        competitors: Sequence[str] = (),
    ):
        self.subjects = list(subjects)
        self.topics = list(topics)
        self.intents = list(intents)
        self.competitors = list(competitors)

    @property
    def deep_size(self) -> int:
        return len(self.subjects) * len(self.topics) * len(self.intents)

    @property
    def comparison_size(self) -> int:
        return len(self.subjects) * len(self.competitors)

    def __len__(self) -> int:
        return self.deep_size + self.comparison_size

    def __getitem__(self, index: int) -> WorkItem:
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError(f"work item index {index} out of range")

        if index < self.deep_size:
            per_subject = len(self.topics) * len(self.intents)
            subject, rest = divmod(index, per_subject)
            topic, intent = divmod(rest, len(self.intents))
            return WorkItem(
                subject=self.subjects[subject],
                topic=self.topics[topic],
                intent=self.intents[intent],
            )

        subject, competitor = divmod(index - self.deep_size, len(self.competitors))
        return WorkItem(
            subject=self.subjects[subject],
            topic=COMPARISON_TOPIC,
            intent=COMPARISON_INTENT,
            competitor=self.competitors[competitor],
        )

    def __iter__(self) -> Iterator[WorkItem]:
        for index in range(len(self)):
            yield self[index]

    def shuffled(self, rng: Optional[random.Random] = None) -> Iterator[WorkItem]:
        """
        Yield every item once, in uniformly random order.

        Lazy Fisher-Yates over the index range: only displaced positions are
        remembered, so memory grows with the number of items consumed rather
        than with the size of the backlog.
        """
        rng = rng or random.Random()
        size = len(self)
        displaced: Dict[int, int] = {}
        for position in range(size):
            pick = rng.randrange(position, size)
            index = displaced.get(pick, pick)
            displaced[pick] = displaced.pop(position, position)
            yield self[index]


def build_queue(
    subjects: Sequence[str],
    topics: Sequence[str],
    intents: Sequence[str],
    competitors: Sequence[str] = (),
) -> Iterator[WorkItem]:
    """Generate the full backlog in declaration order."""
    yield from WorkQueue(subjects, topics, intents, competitors)


# =============================================================================
# COLLISION PRE-FILTER
# =============================================================================

def probable_titles(item: WorkItem) -> List[str]:
    """Title fragments an article for this item would very likely contain."""
    return [
        f"Where to Buy {item.subject} Online",
        f"Buy {item.subject} Online",
        f"{item.subject} Buy Online",
    ]


def slug_base(item: WorkItem) -> str:
    return slugify(f"{item.subject}-{item.topic}-{item.competitor or item.intent}")


def collides(item: WorkItem, existing: ExistingContent) -> bool:
    """
    Cheap pre-generation duplicate check.

    True if an existing title contains one of the item's probable titles,
    or an existing slug starts with the item's slug base prefix
    (case-insensitive). Not a guarantee of uniqueness.
    """
    fragments = [t.lower() for t in probable_titles(item)]
    for title in existing.titles:
        lowered = title.lower()
        if any(fragment in lowered for fragment in fragments):
            return True

    prefix = slug_base(item)[:SLUG_PREFIX_LENGTH]
    return any(slug.lower().startswith(prefix) for slug in existing.slugs)


def next_batch(
    queue: WorkQueue,
    existing: ExistingContent,
    batch_size: int,
    rng: Optional[random.Random] = None,
) -> List[WorkItem]:
    """
    Claim the next batch: shuffle the backlog, drop colliding items, cap.

    Pure function of its inputs (plus the RNG).
    """
    batch: List[WorkItem] = []
    filtered = 0

    if batch_size <= 0:
        return batch

    for item in queue.shuffled(rng):
        if collides(item, existing):
            filtered += 1
            continue
        batch.append(item)
        if len(batch) >= batch_size:
            break

    logger.info(
        "batch_claimed",
        backlog=len(queue),
        batch_size=len(batch),
        filtered=filtered,
    )
    return batch
