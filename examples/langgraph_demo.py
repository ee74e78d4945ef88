# examples/langgraph_demo.py
# Run with: python examples/langgraph_demo.py
#
# Requires: pip install "symtex-ledger[langchain]" langgraph langchain-openai
# Set OPENAI_API_KEY environment variable for real LLM calls

from symtex_ledger.integration.langgraph import CognateLedgerAuditor

from langchain_core.messages import HumanMessage


# =============================================================================
# DEMO: Auditing a LangGraph ReAct agent as a Cognate
# =============================================================================

if __name__ == "__main__":
    from langgraph.prebuilt import create_react_agent
    from langchain_openai import ChatOpenAI
    from langchain_core.tools import tool

    print("=" * 70)
    print("SYMTEX LEDGER + LANGGRAPH DEMO")
    print("=" * 70)
    print()

    # Step 1: One auditor per Cognate; in-memory ledger unless a storage URI is given
    auditor = CognateLedgerAuditor(
        cognate_id="cog-support",
        cognate_name="Support Cognate",
        space_id="space-support",
        project_id="proj-tickets",
        goal="Answer the customer's shipping question",
        tags=["support", "demo"],
    )

    print("1. Created CognateLedgerAuditor for cog-support")
    print()

    # Step 2: Define tools
    @tool
    def lookup_order(order_id: str) -> str:
        """Look up the shipping status of an order."""
        return f'{{"order_id": "{order_id}", "status": "shipped", "carrier": "UPS"}}'

    @tool
    def estimate_delivery(carrier: str) -> str:
        """Estimate delivery time for a carrier."""
        return f'{{"carrier": "{carrier}", "days": 2}}'

    print("2. Defined tools: lookup_order, estimate_delivery")
    print()

    # Step 3: Run the agent with the ledger callback
    llm = ChatOpenAI(model="gpt-4o-mini")
    agent = create_react_agent(llm, [lookup_order, estimate_delivery])

    print("3. Running agent with the ledger callback...")
    print("-" * 50)

    result = agent.invoke(
        {"messages": [HumanMessage(content="Where is order #4582 and when will it arrive?")]},
        config={"callbacks": [auditor.callback]},
    )
    answer = result["messages"][-1].content
    print(f"   Answer: {answer[:100]}")
    print()

    # Step 4: What the ledger recorded
    print("4. Ledger entries (oldest first):")
    print("-" * 50)

    outcome = auditor.query(sort={"field": "sequence", "direction": "asc"}, pagination={"page_size": 50})
    for entry in outcome.entries:
        parent = f" parent={entry.parent_id}" if entry.parent_id else ""
        print(f"   #{entry.sequence} {entry.what.type:10} {entry.what.description[:40]:40}{parent}")
        print(f"      hash={entry.crypto.content_hash[:16]}... prev={entry.crypto.previous_hash[:16]}...")
    print()

    # Step 5: Verify
    print("5. Verifying the hash chain...")
    print("-" * 50)
    verification = auditor.verify()
    print(f"   {verification}")
    print()

    print("=" * 70)
    print("DEMO COMPLETE")
    print("=" * 70)
