"""
Story store core.

Leaf-first:

1. IDS (ids.py)
   - (kind, name) → stable story id

2. METADATA (metadata.py)
   - Global / kind / story parameter merge, decorator concatenation

3. DECORATORS (decorators.py)
   - Composes decorators around a story function, first decorator outermost

4. ARGS (args.py)
   - argTypes defaults, per-key args updates

5. SORT (story_sort.py)
   - Custom comparator, alphabetical and configure policies

6. DISPATCH (scheduler.py, channel.py, dispatcher.py)
   - Selection and args notifications to the channel and local listeners

7. REGISTRY (story_store.py)
   - StoryStore: add / lookup / remove / extract
"""
