"""ElfCode Interactive Demo.

A Gradio web interface for running and tracing ElfCode listings.

Usage:
    cd /path/to/elfcode
    python demo/gradio_app.py

Features:
    - Paste or load a listing (with optional #ip directive)
    - Choose the initial registers
    - See the step-by-step trace and the pseudo-assembly
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from elfcode import RegisterMachine, parse_program
from elfcode.disassemble import disassemble


TRACE_LIMIT = 100

# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Jump via ip": """#ip 0
seti 5 0 1
seti 6 0 2
addi 0 1 0      ; skip the next instruction
addr 1 2 3
setr 1 0 0      ; jump to 6
seti 8 0 4
seti 9 0 5""",

    "Straight line": """seti 5 0 1
addr 0 1 2
addi 2 3 2""",

    "Countdown": """#ip 4
seti 10 0 0     ; x0 = 10
addi 1 1 1      ; x1 += 1
eqrr 0 1 2      ; x2 = x0 == x1
addr 2 4 4      ; skip next when equal
seti 0 0 4      ; goto 1""",

    "Custom": ""
}


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(program: str, registers: str, size: int, max_cycles: int) -> tuple:
    """Execute a listing and return results.

    Args:
        program: Listing source
        registers: Initial registers, comma separated
        size: Register file width
        max_cycles: Maximum execution cycles

    Returns:
        Tuple of (summary_text, trace_text, registers_text)
    """
    if not program.strip():
        return "Error: No program provided", "", ""

    try:
        initial = [int(v) for v in registers.replace(" ", "").split(",") if v]
        machine = RegisterMachine(size=int(size), max_cycles=int(max_cycles), trace=True)
        machine.load_program(program, registers=initial)

        try:
            machine.run()
        except RuntimeError as e:
            error_msg = str(e)
        else:
            error_msg = None

        summary = machine.get_summary()
        summary_lines = [
            "EXECUTION SUMMARY",
            "=" * 40,
            f"Cycles: {summary['cycles']}",
            f"Halted: {'Yes' if summary['halted'] else 'No'}",
            f"IP register: {summary['ip_register']}",
        ]
        if error_msg:
            summary_lines.append(f"\nRuntime: {error_msg}")
        summary_text = "\n".join(summary_lines)

        trace_lines = [
            "EXECUTION TRACE",
            "=" * 60,
        ]
        for entry in machine.trace[:TRACE_LIMIT]:
            trace_lines.append(f"\n--- Cycle {entry.cycle} (PC={entry.pre_state['pc']}) ---")
            trace_lines.append(f"Instruction: {entry.instruction}")

            pre_regs = entry.pre_state['registers']
            post_regs = entry.post_state['registers']
            changes = [
                f"x{i}: {before} -> {after}"
                for i, (before, after) in enumerate(zip(pre_regs, post_regs))
                if before != after
            ]
            if changes:
                trace_lines.append(f"Changes:     {', '.join(changes)}")

        if len(machine.trace) > TRACE_LIMIT:
            trace_lines.append(f"\n... ({len(machine.trace) - TRACE_LIMIT} more entries)")

        trace_text = "\n".join(trace_lines)

        reg_lines = [
            "FINAL REGISTERS",
            "=" * 30,
        ]
        for index, value in enumerate(machine.dump_registers()):
            marker = " *" if value != 0 else ""
            reg_lines.append(f"  x{index}: {value:>10}{marker}")
        registers_text = "\n".join(reg_lines)

        return summary_text, trace_text, registers_text

    except (ValueError, IndexError) as e:
        return f"Error: {str(e)}", "", ""


def show_disassembly(program: str) -> str:
    """Render the pseudo-assembly of a listing."""
    try:
        return "\n".join(disassemble(parse_program(program)))
    except ValueError as e:
        return f"Error: {str(e)}"


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="ElfCode Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # ElfCode Register Machine

        Sixteen three-operand opcodes over a small register file. With an
        `#ip N` directive, register N mirrors the program counter: it is
        written before each instruction and read back (plus one) after it.
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Listing")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Jump via ip",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Jump via ip"],
                    label="Source Code",
                    lines=15,
                    placeholder="#ip 0\nseti 5 0 1\n..."
                )

                gr.Markdown("### Settings")

                with gr.Row():
                    registers_input = gr.Textbox(
                        value="0",
                        label="Initial Registers",
                        info="Comma separated, zero-padded"
                    )
                    size_input = gr.Slider(
                        minimum=1,
                        maximum=16,
                        value=6,
                        step=1,
                        label="Register Count"
                    )
                    max_cycles = gr.Slider(
                        minimum=100,
                        maximum=1000000,
                        value=10000,
                        step=100,
                        label="Max Cycles"
                    )

                with gr.Row():
                    run_button = gr.Button("Run Program", variant="primary")
                    disasm_button = gr.Button("Disassemble")

            with gr.Column(scale=3):
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Final Registers",
                        lines=10,
                        interactive=False
                    )

                trace_output = gr.Textbox(
                    label="Execution Trace",
                    lines=20,
                    interactive=False
                )

                disasm_output = gr.Textbox(
                    label="Pseudo-assembly",
                    lines=10,
                    interactive=False
                )

        with gr.Accordion("Opcode Reference", open=False):
            gr.Markdown("""
            | Opcode | Effect |
            |--------|--------|
            | `addr a b c` / `addi a b c` | `xc = xa + xb` / `xc = xa + b` |
            | `mulr a b c` / `muli a b c` | `xc = xa * xb` / `xc = xa * b` |
            | `banr a b c` / `bani a b c` | `xc = xa & xb` / `xc = xa & b` |
            | `borr a b c` / `bori a b c` | `xc = xa \\| xb` / `xc = xa \\| b` |
            | `setr a _ c` / `seti a _ c` | `xc = xa` / `xc = a` |
            | `gtir` / `gtri` / `gtrr` | `xc = 1 if a > b else 0` |
            | `eqir` / `eqri` / `eqrr` | `xc = 1 if a == b else 0` |

            **Operands**: `r` = register index, `i` = immediate value
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input, registers_input, size_input, max_cycles],
            outputs=[summary_output, trace_output, registers_output]
        )

        disasm_button.click(
            fn=show_disassembly,
            inputs=[program_input],
            outputs=[disasm_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
