"""Critical-insights analysis: nine LLM tasks wired into one stage graph.

The responder answers the query (critical), five analyses fan out over the
answer, critique and challenges form a dependent chain, and synthesis
consumes everything.
"""
