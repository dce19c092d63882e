from __future__ import annotations

import pytest


def test_text_sim_runs_and_saves(tmp_path, capsys):
    from save_system import FileSavePort, deserialize
    from text_sim import main

    save = tmp_path / "kingdom.json"
    main(["--steps", "3", "--clicks", "2", "--save", str(save), "--data-dir", str(tmp_path / "data"), "--init-data"])

    out = capsys.readouterr().out
    assert "Step 003" in out
    assert len(list((tmp_path / "data").glob("*.json"))) == 8
    state = deserialize(FileSavePort(save).load())
    assert state is not None
    assert state.clicks == 6


def test_text_sim_rejects_non_positive_steps():
    from text_sim import main

    with pytest.raises(SystemExit):
        main(["--steps", "0"])
