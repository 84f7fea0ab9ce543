"""Comparison engine — decides which alternative offer, if any, to surface.

Modules:
    config           Pricing policy constants (sanitizer bands, fallbacks, fairness ratio)
    offer_search     Broad and partner search passes over a search-grounded LLM
    price_sanitizer  Repairs missing / implausible prices
    fairness         The 40% fairness rule
    link_builder     Affiliate and direct booking links
    orchestrator     Runs the pipeline and assembles the response

Pipeline:
    OfferSearchService (broad ∥ partner) → sanitize_offer (×2) → decide
    → LinkBuilder.build → PriceDropOrchestrator response
"""
