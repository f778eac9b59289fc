import subprocess

import pytest

from repeat_extender.config import ExtenderConfig
from repeat_extender.consensus_builder import (
    LEFT, RIGHT, ConsensusResult, CrossMatchLinupBuilder,
    extension_fragment, pad_consensus, parse_alignment_report
)
from repeat_extender.exceptions import ExternalToolError

LINUP_REPORT = """rep0          1 NNNNACGTAC-GT 12
rep1          1 TTTTACGTAC-GT 12
rep2          1 TTTAACGTACCGT 13
consensus     1 TTTTACGTAC-GT 12

rep0         13 ACGT 16
rep1         13 ACGT 16
consensus    13 ACGT 16
"""


def test_pad_consensus():
    assert pad_consensus('ACGT', 3, LEFT) == 'NNNACGT'
    assert pad_consensus('ACGT', 3, RIGHT) == 'ACGTNNN'
    with pytest.raises(ValueError):
        pad_consensus('ACGT', 3, 'middle')


def test_extension_fragment_strips_gaps():
    assert extension_fragment('T-T-TTACGT', 4, LEFT) == 'TTTT'
    assert extension_fragment('ACGTGG-GG', 4, RIGHT) == 'GGGG'
    assert extension_fragment('AC', 4, LEFT) == 'AC'


def test_parse_alignment_report():
    assert parse_alignment_report(LINUP_REPORT) == 'TTTTACGTACGTACGT'
    assert parse_alignment_report('') == ''


def test_edge_blocks():
    result = ConsensusResult('TTTT', report=LINUP_REPORT)
    first, last = result.edge_blocks()
    assert first.startswith('rep0          1')
    assert last.startswith('rep0         13')
    assert ConsensusResult('').edge_blocks() == ('', '')


class RecordingRun:
    """替代subprocess.run：记录命令并把预设内容写到stdout"""

    def __init__(self, outputs, returncode=0):
        self.outputs = outputs
        self.returncode = returncode
        self.commands = []

    def __call__(self, cmd, stdout=None, stderr=None, text=None, **kwargs):
        self.commands.append(cmd)
        stdout.write(self.outputs.get(cmd[0], ''))
        return subprocess.CompletedProcess(cmd, self.returncode, stderr='boom')


def builder_config(tmp_path):
    return ExtenderConfig(temp_prefix=str(tmp_path / 'temp'), matrix_dir='/opt/Matrices',
                          divergence=18, cross_match_exe='cross_match', linup_exe='Linup')


def test_cross_match_linup_builder(tmp_path, monkeypatch):
    fake_run = RecordingRun({'cross_match': 'alignments...\n', 'Linup': LINUP_REPORT})
    monkeypatch.setattr(subprocess, 'run', fake_run)
    config = builder_config(tmp_path)
    builder = CrossMatchLinupBuilder(config)

    result = builder.build_consensus('NNNNACGTACGTACGT', ['TTTTACGTACGT', 'TTTAACGTACCGT'])

    assert result.consensus == 'TTTTACGTACGTACGT'
    assert result.report == LINUP_REPORT

    prefix = str(tmp_path / 'temp')
    assert (tmp_path / 'temp.rep.fa').read_text() == '>rep0\nNNNNACGTACGTACGT\n'
    assert (tmp_path / 'temp.repseq.fa').read_text() == \
        '>rep1\nTTTTACGTACGT\n>rep2\nTTTAACGTACCGT\n'
    assert (tmp_path / 'temp.ali').read_text() == LINUP_REPORT

    cm_cmd, linup_cmd = fake_run.commands
    assert cm_cmd[:3] == ['cross_match', f'{prefix}.repseq.fa', f'{prefix}.rep.fa']
    assert cm_cmd[3:-1] == config.cross_match_params()
    assert cm_cmd[-1] == '-alignments'
    assert linup_cmd == ['Linup', f'{prefix}.cm_out', '/opt/Matrices/linup/nt/linupmatrix']


def test_configure_switches_temp_prefix(tmp_path, monkeypatch):
    monkeypatch.setattr(subprocess, 'run', RecordingRun({'Linup': LINUP_REPORT}))
    builder = CrossMatchLinupBuilder(builder_config(tmp_path))
    new_config = builder_config(tmp_path)
    new_config.temp_prefix = str(tmp_path / 'other')
    builder.configure(new_config)

    builder.build_consensus('NNNNACGT', ['TTTTACGT'])
    assert (tmp_path / 'other.ali').exists()
    assert not (tmp_path / 'temp.ali').exists()


def test_tool_failure_raises(tmp_path, monkeypatch):
    monkeypatch.setattr(subprocess, 'run', RecordingRun({}, returncode=2))
    builder = CrossMatchLinupBuilder(builder_config(tmp_path))

    with pytest.raises(ExternalToolError) as excinfo:
        builder.build_consensus('NNNNACGT', ['TTTTACGT'])
    assert excinfo.value.tool == 'cross_match'
    assert excinfo.value.returncode == 2
    assert 'boom' in str(excinfo.value)


def test_missing_tool_raises(tmp_path, monkeypatch):
    def missing(cmd, **kwargs):
        raise FileNotFoundError(2, 'No such file or directory', cmd[0])

    monkeypatch.setattr(subprocess, 'run', missing)
    builder = CrossMatchLinupBuilder(builder_config(tmp_path))
    with pytest.raises(ExternalToolError):
        builder.build_consensus('NNNNACGT', ['TTTTACGT'])
